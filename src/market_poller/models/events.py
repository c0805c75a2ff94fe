"""Market event models decoded from Stellar DEX transactions."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from decimal import Decimal
from typing import Any, Union


@dataclass(frozen=True)
class OfferPlacedEvent:
    """The watched account created or updated an offer that rests on the book.

    ``amount`` is the amount the operation asked for; fills produced by the
    same operation are reported before this event.
    """

    signature: str  # transaction hash
    ledger_sequence: int
    operation_id: str
    account: str
    offer_id: int  # ledger-assigned; 0 only if the result XDR was unavailable
    side: str  # "sell" or "buy"
    selling: str  # "native" or "CODE:ISSUER"
    buying: str
    amount: Decimal
    price: Decimal
    passive: bool = False


@dataclass(frozen=True)
class OfferCancelledEvent:
    """The watched account deleted a resting offer (amount set to zero)."""

    signature: str
    ledger_sequence: int
    operation_id: str
    account: str
    offer_id: int
    selling: str
    buying: str


@dataclass(frozen=True)
class FillEvent:
    """One side of a trade that involved the watched account.

    ``maker`` is True when the watched account's resting offer was crossed
    by someone else's operation.
    """

    signature: str
    ledger_sequence: int
    operation_id: str
    account: str
    counterparty: str
    offer_id: int
    sold: str
    sold_amount: Decimal
    bought: str
    bought_amount: Decimal
    maker: bool


MarketEvent = Union[OfferPlacedEvent, OfferCancelledEvent, FillEvent]

_EVENT_KINDS = {
    OfferPlacedEvent: "offer_placed",
    OfferCancelledEvent: "offer_cancelled",
    FillEvent: "fill",
}


def event_kind(event: MarketEvent) -> str:
    return _EVENT_KINDS[type(event)]


def event_to_dict(event: MarketEvent) -> dict[str, Any]:
    """JSON-safe dict for an event, tagged with its ``kind``."""
    data: dict[str, Any] = {"kind": event_kind(event)}
    for key, value in asdict(event).items():
        data[key] = str(value) if isinstance(value, Decimal) else value
    return data
