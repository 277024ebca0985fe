from __future__ import annotations


class ProjestError(Exception):
    """Base class for errors raised by the estimation core."""


class ValidationError(ProjestError, ValueError):
    """Raised when an input is outside the range the core accepts."""


class StoreError(ProjestError):
    """Raised when the persistence handle cannot read or write its backing file."""


class RenderError(ProjestError):
    """Raised when a report export cannot be produced."""


__all__ = ["ProjestError", "ValidationError", "StoreError", "RenderError"]
