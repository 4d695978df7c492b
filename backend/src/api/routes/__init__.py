"""HTTP API route handlers."""

from . import entries, logs, relations

__all__ = ["entries", "logs", "relations"]
