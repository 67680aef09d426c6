"""Graph workflow definitions."""

from pydantic_graph import Graph

from pretested.core.log import logger
from pretested.workflow.state import CycleState


def create_start_workflow():
    """Build-start graph: Select → Prepare → End.

    Returns:
        Graph with CycleState as state_type
    """
    logger.debug("Building start workflow graph")

    from pretested.workflow.nodes.prepare import Prepare
    from pretested.workflow.nodes.select import Select

    return Graph(nodes=(Select, Prepare), state_type=CycleState)


def create_complete_workflow():
    """Build-complete graph: Finalize → Retrigger → End.

    Returns:
        Graph with CycleState as state_type
    """
    logger.debug("Building complete workflow graph")

    from pretested.workflow.nodes.finalize import Finalize
    from pretested.workflow.nodes.retrigger import Retrigger

    return Graph(nodes=(Finalize, Retrigger), state_type=CycleState)
