"""CLI command modules for pretested."""

from pretested.command.integrate import IntegrateCommand
from pretested.command.pending import PendingCommand

__all__ = ["IntegrateCommand", "PendingCommand"]
