"""Pretested integration: test candidate commits before they reach a
protected branch."""

__version__ = "0.1.0"
