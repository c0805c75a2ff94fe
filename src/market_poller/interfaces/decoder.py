"""TransactionDecoder protocol - turns one transaction into market events."""

from __future__ import annotations

from typing import Protocol

from market_poller.models.events import MarketEvent


class TransactionDecoder(Protocol):
    """Fetches a transaction by signature and decodes its market events."""

    async def decode(self, signature: str) -> list[MarketEvent]:
        """Return the events in the transaction, possibly none.

        Raises DecodeError only for transport or deserialization failure.
        """
        ...
