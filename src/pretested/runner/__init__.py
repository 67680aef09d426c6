"""Build check execution."""

from pretested.runner.check import CheckOutcome, CheckRunner, attempt_label

__all__ = ["CheckOutcome", "CheckRunner", "attempt_label"]
