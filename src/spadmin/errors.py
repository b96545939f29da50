from __future__ import annotations

from typing import Optional, Sequence


class SpAdminError(Exception):
    """Base exception for spadmin operations."""


class AdminApiError(SpAdminError):
    """Raised when a call into the administration backend fails."""

    def __init__(self, message: str, operation: Optional[str] = None):
        super().__init__(message)
        self.operation = operation


class AmbiguousTargetError(SpAdminError):
    """Raised when no target was given and several are available."""

    def __init__(self, candidates: Sequence[str]):
        names = ", ".join(candidates)
        super().__init__(
            f"{len(candidates)} search applications found ({names}); select one explicitly"
        )
        self.candidates = tuple(candidates)


class InvalidDistinguishedNameError(SpAdminError):
    """Raised when an organisational unit DN cannot be parsed."""
    pass
