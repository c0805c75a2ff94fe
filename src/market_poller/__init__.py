"""Ordered market-event poller for a single Stellar account."""

__version__ = "0.1.0"
