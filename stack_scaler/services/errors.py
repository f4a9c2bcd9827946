from __future__ import annotations

from typing import Any, Optional


class StackScalerError(RuntimeError):
    pass


class ConfigurationError(StackScalerError, ValueError):
    """Missing or invalid capacity / DNS zone entries. Raised before any mutation."""


class ConnectivityError(StackScalerError):
    """A cloud or cluster API call could not complete."""


class StabilizationTimeoutError(StackScalerError):
    def __init__(self, message: str, *, awaiting: str) -> None:
        super().__init__(message)
        self.awaiting = awaiting


class SolrOperationError(StackScalerError):
    """A collections-admin call reported failure; `payload` is the raw response."""

    def __init__(self, message: str, *, payload: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.payload = payload or {}
