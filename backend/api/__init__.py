"""API route handlers."""
from . import refresh

__all__ = ["refresh"]
