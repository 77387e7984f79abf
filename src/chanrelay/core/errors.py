"""Relay domain exceptions."""

from __future__ import annotations


class RelayError(Exception):
    """Base for relay domain errors."""

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        details: dict[str, object] | None = None,
        original_error: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.details = details or {}
        self.original_error = original_error


class RelayConfigurationError(RelayError):
    """Config validation or load failure."""


class NotFound(RelayError):
    """Referenced guild, channel, connection or rule is absent."""


class DeliveryUnavailable(RelayError):
    """Platform refused webhook creation or execution."""


class StoreError(RelayError):
    """Underlying persistence failure."""


class NoCandidates(RelayError):
    """Name matcher was given an empty candidate list."""
