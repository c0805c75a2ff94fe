"""Error taxonomy for the poller and its collaborators."""

from __future__ import annotations


class PollerError(Exception):
    """Base class for all market_poller errors."""


class FetchError(PollerError):
    """The ledger query failed. Fatal to the worker."""


class DecodeError(PollerError):
    """A single transaction could not be fetched or decoded.

    The poller recovers from this locally: the transaction yields no events
    and the cursor still moves past it.
    """

    def __init__(self, signature: str, message: str) -> None:
        super().__init__(f"{signature}: {message}")
        self.signature = signature


class DispatchError(PollerError):
    """The output sink rejected an event batch. Fatal to the worker."""


class ConfigError(ValueError):
    """Invalid or incomplete configuration."""
