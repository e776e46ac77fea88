"""Error taxonomy and structured response envelopes."""

from __future__ import annotations

from typing import Any, Dict, Optional


class ReviewkitError(Exception):
    """Base class for every error raised by the toolkit."""


class ParseError(ReviewkitError):
    """Input could not be read as the expected category (markup or source)."""


class ExternalServiceError(ReviewkitError):
    """A call to the code-hosting API failed."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ValidationError(ReviewkitError):
    """A request is missing required fields."""


class SignatureError(ReviewkitError):
    """A webhook signature is missing or does not match the payload."""


class ConfigError(ReviewkitError):
    """Settings are incomplete or inconsistent."""


def err(message: str, error: Optional[str] = None) -> Dict[str, Any]:
    """Build a structured failure envelope."""
    body: Dict[str, Any] = {"success": False, "message": message}
    if error is not None:
        body["error"] = error
    return body


def ok(**fields: Any) -> Dict[str, Any]:
    """Build a structured success envelope."""
    return {"success": True, **fields}
