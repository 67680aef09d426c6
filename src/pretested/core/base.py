"""Base classes for configuration and state models.

This module contains the foundational classes shared by the
configuration, logging and runtime state of pretested:
- Closeable Protocol for resource cleanup
- BaseCloseable for automatic cleanup cascade
- BaseConfig for configuration models
- BaseState for runtime state models

Kept separate from config.py and log.py so that neither has to
import the other at module load time.
"""

from __future__ import annotations

import sys
from typing import Protocol, runtime_checkable

from pydantic import BaseModel


@runtime_checkable
class Closeable(Protocol):
    """Protocol for objects that support close()."""

    def close(self) -> None:
        """Release resources."""
        ...


class BaseCloseable(BaseModel):
    """Pydantic model that closes its Closeable children.

    Any model inheriting from BaseCloseable:
    - Is a context manager
    - Walks its fields on close() and closes each Closeable child
    - Keeps closing remaining children when one of them fails

    The resulting cascade is
    State.__exit__() → Config.close() → Logger.close() → Sink.close()
    """

    def close(self):
        """Close all closeable child objects.

        Errors from individual children are reported on stderr,
        the logger itself may be the child that is failing.
        """
        for field_name in self.__class__.model_fields:
            child = getattr(self, field_name, None)
            if child is None:
                continue

            if isinstance(child, Closeable):
                try:
                    child.close()
                except Exception as e:
                    msg = f"Warning: Error closing {field_name}: {e}"
                    print(msg, file=sys.stderr)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):  # noqa: U100
        self.close()
        return False


class BaseConfig(BaseCloseable):
    """Base class for configuration sections.

    Marks a model as loaded from YAML/env/CLI rather than
    mutated at runtime.
    """
    pass


class BaseState(BaseCloseable):
    """Base class for runtime state sections.

    Marks a model as mutated while a job runs rather than
    loaded from configuration.
    """
    pass


__all__ = ["Closeable", "BaseCloseable", "BaseConfig", "BaseState"]
