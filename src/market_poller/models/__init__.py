"""Data models for the market poller."""

from market_poller.models.events import (
    FillEvent,
    MarketEvent,
    OfferCancelledEvent,
    OfferPlacedEvent,
    event_kind,
    event_to_dict,
)
from market_poller.models.ledger import Commitment, EventBatch, SignatureInfo
from market_poller.models.records import ExitReason, PollerExit, PollerStats
from market_poller.models.config import PollerConfig

__all__ = [
    "FillEvent", "MarketEvent", "OfferCancelledEvent", "OfferPlacedEvent",
    "event_kind", "event_to_dict",
    "Commitment", "EventBatch", "SignatureInfo",
    "ExitReason", "PollerExit", "PollerStats",
    "PollerConfig",
]
