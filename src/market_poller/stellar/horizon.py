"""Horizon server construction and paging helpers."""

from __future__ import annotations

import logging
from typing import Any, Callable

from stellar_sdk import ServerAsync
from stellar_sdk.client.aiohttp_client import AiohttpClient

log = logging.getLogger(__name__)


def open_server(horizon_url: str) -> ServerAsync:
    """Create an async Horizon server. Caller owns it and must ``close()`` it."""
    return ServerAsync(horizon_url=horizon_url, client=AiohttpClient())


def records_of(response: dict[str, Any]) -> list[dict[str, Any]]:
    """Extract the record list from a Horizon collection response."""
    return response["_embedded"]["records"]


async def fetch_all(
    make_builder: Callable[[], Any],
    page_size: int,
) -> list[dict[str, Any]]:
    """Drain an ascending Horizon collection, following paging tokens."""
    records: list[dict[str, Any]] = []
    cursor: str | None = None
    while True:
        builder = make_builder().limit(page_size)
        if cursor is not None:
            builder = builder.cursor(cursor)
        page = records_of(await builder.call())
        records.extend(page)
        if len(page) < page_size:
            return records
        cursor = page[-1]["paging_token"]
        log.debug("Following Horizon page cursor %s", cursor)
