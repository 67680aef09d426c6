#!/usr/bin/env python3
"""pretested CLI - pretested integration of a ready branch."""

import sys

from pydantic_settings import CliApp, CliSubCommand, get_subcommand

from pretested.command.integrate import IntegrateCommand
from pretested.command.pending import PendingCommand
from pretested.core.config import State
from pretested.core.log import logger


class CliState(State):
    """Test commits from a ready branch and integrate them into a
    protected branch only when their build passes.

    Configuration sources (in priority order):
    1. Command-line arguments (--config.job.target_branch main)
    2. pretested.yaml in the current directory, and --include files
    3. .env file
    4. Environment variables
       (PRETESTED_CONFIG__JOB__TARGET_BRANCH=main)
    """

    integrate: CliSubCommand[IntegrateCommand]
    pending: CliSubCommand[PendingCommand]

    def cli_cmd(self):
        """Dispatch to the active subcommand, or show help."""
        subcommand = get_subcommand(self, is_required=False)

        if subcommand is None:
            CliApp.run(CliState, cli_args=['--help'])
            sys.exit(1)

        # Closing the logger flushes file sinks on every exit path
        with logger:
            exit_code = subcommand.run_workflow(self)
            raise SystemExit(exit_code)


def main():
    """Main entry point for CLI."""
    CliApp.run(CliState)


if __name__ == "__main__":
    main()
