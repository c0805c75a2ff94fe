"""EventSink protocol - producer side of the output queue."""

from __future__ import annotations

from typing import Protocol

from market_poller.models.ledger import EventBatch


class EventSink(Protocol):
    """Anything the poller can push batches into. ``asyncio.Queue`` fits."""

    async def put(self, batch: EventBatch) -> None:
        ...
