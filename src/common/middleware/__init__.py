"""Common middleware for Turnout."""

from .observability import StructlogContextMiddleware

__all__ = ["StructlogContextMiddleware"]
