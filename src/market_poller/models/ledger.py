"""Ledger-side records: signatures, batches and consistency levels."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from market_poller.models.events import MarketEvent


class Commitment(str, Enum):
    """Confirmation level a listed transaction must have reached."""

    CONFIRMED = "confirmed"
    FINALIZED = "finalized"


@dataclass(frozen=True)
class SignatureInfo:
    """One entry of an account's transaction history."""

    signature: str  # transaction hash
    ledger: int = 0
    created_at: str = ""
    successful: bool = True
    paging_token: str = ""


@dataclass(frozen=True)
class EventBatch:
    """All events decoded from one transaction, delivered as a unit.

    A batch may be empty: the transaction was seen but carried nothing
    relevant, or could not be decoded.
    """

    signature: str
    events: tuple[MarketEvent, ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.events)

    def __iter__(self):
        return iter(self.events)
