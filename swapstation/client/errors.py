"""Client-side error types."""
from __future__ import annotations

from typing import Dict, Optional


class ApiError(Exception):
    """Request failed; ``message`` is safe to show in a banner."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        errors: Optional[Dict[str, str]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.errors = errors or {}


class UnauthorizedError(ApiError):
    pass


class ForbiddenError(ApiError):
    pass


class FormValidationError(ApiError):
    """Form rejected locally; nothing was sent."""
