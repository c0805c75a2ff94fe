"""Protocol interfaces for the poller's collaborators."""

from market_poller.interfaces.ledger import LedgerQuery
from market_poller.interfaces.decoder import TransactionDecoder
from market_poller.interfaces.sink import EventSink

__all__ = ["LedgerQuery", "TransactionDecoder", "EventSink"]
