"""Event poller - ordered fetch/decode/dispatch loop over one address."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone

from market_poller.errors import DispatchError, FetchError
from market_poller.interfaces.decoder import TransactionDecoder
from market_poller.interfaces.ledger import LedgerQuery
from market_poller.interfaces.sink import EventSink
from market_poller.models.config import DEFAULT_POLL_INTERVAL
from market_poller.models.ledger import Commitment, EventBatch, SignatureInfo
from market_poller.models.records import ExitReason, PollerExit, PollerStats

log = logging.getLogger(__name__)

WORKER_NAME = "event-poller"


class EventPoller:
    """Watches one address and pushes an EventBatch per new transaction.

    The cursor is the newest signature already dispatched. With no cursor
    the first fetch asks for the single newest transaction only, so the
    poller starts at the head of history instead of backfilling it. Every
    later fetch asks for everything strictly newer than the cursor.

    Ledger listings come back most-recent-first and are dispatched
    oldest-first, one decode at a time, so batches reach the sink in
    confirmation order. This is best effort at ledger-finality edges:
    a transaction that lands between the listing and its boundary could
    in theory be missed.

    Fetch and dispatch failures stop the worker. Decode failures only
    empty that transaction's batch.
    """

    def __init__(
        self,
        ledger: LedgerQuery,
        decoder: TransactionDecoder,
        sink: EventSink,
        address: str,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        commitment: Commitment = Commitment.CONFIRMED,
    ) -> None:
        if poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive, got {poll_interval}")
        self._ledger = ledger
        self._decoder = decoder
        self._sink = sink
        self._address = address
        self._poll_interval = poll_interval
        self._commitment = commitment
        self._cursor: str | None = None
        self._stop = asyncio.Event()
        self._task: asyncio.Task | None = None
        self.stats = PollerStats()

    @classmethod
    def with_default_interval(
        cls,
        ledger: LedgerQuery,
        decoder: TransactionDecoder,
        sink: EventSink,
        address: str,
    ) -> EventPoller:
        return cls(ledger, decoder, sink, address, DEFAULT_POLL_INTERVAL)

    @property
    def address(self) -> str:
        return self._address

    @property
    def cursor(self) -> str | None:
        return self._cursor

    @property
    def poll_interval(self) -> float:
        return self._poll_interval

    # ── Lifecycle ──────────────────────────────────────────

    def start(self) -> PollerHandle:
        """Spawn the worker task on the running loop.

        A ``stop()`` issued before the first start is honoured: the worker
        exits before its first cycle. Restarting a finished poller clears
        the previous stop request.
        """
        if self._task is not None:
            if not self._task.done():
                raise RuntimeError("poller is already running")
            self._stop.clear()
        self._task = asyncio.create_task(self.run(), name=WORKER_NAME)
        return PollerHandle(self, self._task)

    def stop(self) -> None:
        """Ask the worker to exit after the current cycle."""
        log.info("Stop requested for poller on %s", self._address)
        self._stop.set()

    async def run(self) -> PollerExit:
        """Worker body: poll, dispatch, sleep, until stopped or failed."""
        log.info(
            "Event poller started for %s (interval %.3fs)",
            self._address, self._poll_interval,
        )
        try:
            while not self._stop.is_set():
                await self.poll_once()
                await self._sleep()
        except (FetchError, DispatchError) as exc:
            log.error("Event poller for %s stopped: %s", self._address, exc, exc_info=True)
            return self._exit(ExitReason.FAILED, exc)
        except asyncio.CancelledError:
            log.info("Event poller for %s cancelled", self._address)
            return self._exit(ExitReason.STOPPED)

        log.info("Event poller for %s stopped (cursor: %s)", self._address, self._cursor)
        return self._exit(ExitReason.STOPPED)

    # ── One cycle ──────────────────────────────────────────

    async def poll_once(self) -> int:
        """Run a single fetch-and-drain cycle. Returns batches dispatched."""
        signatures = await self._fetch()
        self.stats.cycles += 1
        self.stats.last_poll_at = datetime.now(timezone.utc)

        if not signatures:
            return 0

        self.stats.signatures_seen += len(signatures)
        if self._cursor is None:
            log.info("Seeding cursor for %s at %s", self._address, signatures[0].signature)

        for info in reversed(signatures):
            await self._dispatch(info.signature)
            self._cursor = info.signature

        log.info(
            "Dispatched %d transactions for %s (cursor: %s)",
            len(signatures), self._address, self._cursor,
        )
        return len(signatures)

    async def _fetch(self) -> list[SignatureInfo]:
        if self._cursor is None:
            until, limit = None, 1
        else:
            until, limit = self._cursor, None
        try:
            return await self._ledger.fetch(
                self._address, until=until, limit=limit, commitment=self._commitment,
            )
        except FetchError:
            raise
        except Exception as exc:
            raise FetchError(f"ledger query for {self._address} failed: {exc}") from exc

    async def _dispatch(self, signature: str) -> None:
        try:
            events = await self._decoder.decode(signature)
        except Exception as exc:
            log.warning("Could not decode %s, dispatching no events: %s", signature, exc)
            self.stats.decode_failures += 1
            events = []

        batch = EventBatch(signature=signature, events=tuple(events))
        log.debug("Decoded %d events from %s", len(batch), signature)
        try:
            await self._sink.put(batch)
        except Exception as exc:
            raise DispatchError(f"output sink rejected batch {signature}: {exc!r}") from exc

        self.stats.batches_dispatched += 1
        self.stats.events_dispatched += len(batch)

    async def _sleep(self) -> None:
        try:
            await asyncio.wait_for(self._stop.wait(), timeout=self._poll_interval)
        except asyncio.TimeoutError:
            pass

    def _exit(self, reason: ExitReason, error: BaseException | None = None) -> PollerExit:
        return PollerExit(reason=reason, cursor=self._cursor, error=error, stats=self.stats)


class PollerHandle:
    """Handle to a running worker, returned by ``EventPoller.start()``."""

    def __init__(self, poller: EventPoller, task: asyncio.Task) -> None:
        self.poller = poller
        self._task = task

    @property
    def done(self) -> bool:
        return self._task.done()

    def stop(self) -> None:
        self.poller.stop()

    def cancel(self) -> None:
        self._task.cancel()

    async def join(self) -> PollerExit:
        """Wait for the worker to terminate and return its outcome."""
        try:
            return await asyncio.shield(self._task)
        except asyncio.CancelledError:
            if not self._task.cancelled():
                raise
            return PollerExit(
                reason=ExitReason.STOPPED,
                cursor=self.poller.cursor,
                stats=self.poller.stats,
            )
