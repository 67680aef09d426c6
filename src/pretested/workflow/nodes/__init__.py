"""Workflow nodes for the integration state machine."""

from pretested.workflow.nodes.finalize import Finalize
from pretested.workflow.nodes.prepare import Prepare
from pretested.workflow.nodes.retrigger import Retrigger
from pretested.workflow.nodes.select import Select

__all__ = [
    "Select",
    "Prepare",
    "Finalize",
    "Retrigger",
]
