"""Configuration models for the poller."""

from __future__ import annotations

from dataclasses import dataclass

HORIZON_URLS = {
    "testnet": "https://horizon-testnet.stellar.org",
    "mainnet": "https://horizon.stellar.org",
}

DEFAULT_POLL_INTERVAL = 1.0  # seconds
MAX_PAGE_SIZE = 200  # Horizon hard limit per page


@dataclass
class PollerConfig:
    """Complete poller configuration."""

    # Poller
    poll_interval: float = DEFAULT_POLL_INTERVAL
    log_level: str = "info"

    # Stellar
    network: str = "testnet"
    horizon_url: str = ""  # falls back to HORIZON_URLS[network]
    account: str = ""  # watched address
    include_failed: bool = False
    page_size: int = MAX_PAGE_SIZE

    # Output
    queue_size: int = 0  # 0 = unbounded

    def resolved_horizon_url(self) -> str:
        return self.horizon_url or HORIZON_URLS.get(self.network, HORIZON_URLS["testnet"])
