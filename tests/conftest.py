"""Shared fixtures for market_poller tests."""

from __future__ import annotations

import asyncio

import pytest
from pytest_metadata.plugin import metadata_key

from market_poller.models.config import PollerConfig
from market_poller.poller import EventPoller

from tests.factories import WATCHED
from tests.mocks import MockDecoder, MockLedgerQuery

TEST_HORIZON = "https://horizon-testnet.stellar.org"


def pytest_configure(config):
    """Add network info to the HTML report Environment table."""
    meta = config.stash.setdefault(metadata_key, {})
    meta["Network"] = "Stellar Testnet"
    meta["Horizon"] = TEST_HORIZON
    meta["Watched Account"] = WATCHED


def make_test_config(**overrides) -> PollerConfig:
    """Build a PollerConfig suitable for testing."""
    defaults = dict(
        poll_interval=0.01,
        network="testnet",
        horizon_url=TEST_HORIZON,
        account=WATCHED,
        include_failed=False,
        page_size=200,
        queue_size=0,
    )
    defaults.update(overrides)
    return PollerConfig(**defaults)


@pytest.fixture
def test_config():
    """Default PollerConfig for tests."""
    return make_test_config()


@pytest.fixture
def mock_ledger():
    return MockLedgerQuery()


@pytest.fixture
def mock_decoder():
    return MockDecoder()


@pytest.fixture
def queue():
    return asyncio.Queue()


@pytest.fixture
def poller(mock_ledger, mock_decoder, queue):
    """EventPoller wired to mocks with a short interval."""
    return EventPoller(mock_ledger, mock_decoder, queue, WATCHED, poll_interval=0.01)
