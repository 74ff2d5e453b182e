"""Typed errors raised by the adaptive engine."""

from __future__ import annotations

from typing import Any, Dict, Optional


class AdaptiveError(Exception):
    """Base error for adaptive engine failures."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class AdaptiveValidationError(AdaptiveError, ValueError):
    """Raised when a request is rejected before any collaborator call."""


class AdaptiveProcessingError(AdaptiveError):
    """Wraps persistence or unexpected internal failures."""


__all__ = ["AdaptiveError", "AdaptiveProcessingError", "AdaptiveValidationError"]
