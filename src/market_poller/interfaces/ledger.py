"""LedgerQuery protocol - lists confirmed transactions for an address."""

from __future__ import annotations

from typing import Protocol

from market_poller.models.ledger import Commitment, SignatureInfo


class LedgerQuery(Protocol):
    """Read-only view of one address's transaction history."""

    async def fetch(
        self,
        address: str,
        until: str | None = None,
        limit: int | None = None,
        commitment: Commitment = Commitment.CONFIRMED,
    ) -> list[SignatureInfo]:
        """Return signatures most-recent-first.

        With ``until``, exactly the signatures strictly newer than it.
        Without, at most ``limit`` of the newest signatures.
        Raises FetchError on failure.
        """
        ...
