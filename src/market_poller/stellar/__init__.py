"""Stellar/Horizon integration components."""

from market_poller.stellar.decoder import HorizonTransactionDecoder
from market_poller.stellar.horizon import open_server
from market_poller.stellar.ledger import HorizonLedgerQuery

__all__ = ["HorizonLedgerQuery", "HorizonTransactionDecoder", "open_server"]
