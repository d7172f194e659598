"""
exceptions.py — domain exceptions for the tariffs service.

Only conditions the service raises itself live here. Transport and
storage errors keep their library types (httpx.HTTPError,
postgrest.exceptions.APIError) and propagate as-is.
"""

from __future__ import annotations


class WbTariffsError(Exception):
    """Base class for all wbtariffs errors."""


class ConfigurationError(WbTariffsError):
    """A required setting is missing or unusable."""


class InvalidResponseError(WbTariffsError):
    """The upstream API answered, but not with the expected envelope."""

    def __init__(self, message: str, *, payload_preview: str | None = None) -> None:
        super().__init__(message)
        self.payload_preview = payload_preview


class SheetsNotConfiguredError(WbTariffsError):
    """A Google Sheets operation was attempted without credentials."""
