"""Pending command - list candidates awaiting integration."""

from pydantic import BaseModel

from pretested.core.errors import IntegrationError
from pretested.core.log import logger


class PendingCommand(BaseModel):
    """List ready-branch commits that the next build would test."""

    def run_workflow(self, state: "State") -> int:
        from pretested.command.integrate import build_controller

        controller = build_controller(state)
        try:
            candidates = controller.pending()
        except IntegrationError as e:
            logger.error("Cannot compute candidates: {error}", error=str(e))
            return 1

        if not candidates:
            logger.info("Nothing pending")
        for commit in candidates:
            logger.info(
                "{id} {subject}",
                id=commit.short_id,
                subject=commit.subject,
                author=commit.author,
            )
        return 0
