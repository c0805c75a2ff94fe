"""Daemon - wires the Horizon collaborators, poller and consumer together."""

from __future__ import annotations

import asyncio
import logging
import signal
from typing import Callable

from market_poller.interfaces.decoder import TransactionDecoder
from market_poller.interfaces.ledger import LedgerQuery
from market_poller.models.config import PollerConfig
from market_poller.models.events import MarketEvent, event_kind
from market_poller.models.ledger import EventBatch
from market_poller.models.records import PollerExit
from market_poller.poller import EventPoller
from market_poller.stellar.decoder import HorizonTransactionDecoder
from market_poller.stellar.horizon import open_server
from market_poller.stellar.ledger import HorizonLedgerQuery

log = logging.getLogger(__name__)

EventHandler = Callable[[MarketEvent], None]


def _log_event(event: MarketEvent) -> None:
    log.info("%s event in %s", event_kind(event), event.signature)


class MarketPollerDaemon:
    """Runs one EventPoller and drains its queue into an event handler.

    Horizon-backed collaborators are built on start unless supplied.
    """

    def __init__(
        self,
        cfg: PollerConfig,
        emit: EventHandler | None = None,
        ledger: LedgerQuery | None = None,
        decoder: TransactionDecoder | None = None,
    ) -> None:
        self._cfg = cfg
        self._emit = emit or _log_event
        self.ledger = ledger
        self.decoder = decoder
        self.queue: asyncio.Queue[EventBatch | None] = asyncio.Queue(maxsize=cfg.queue_size)
        self.poller: EventPoller | None = None
        self._stop_requested = False

    async def start(self) -> PollerExit:
        """Run until the poller stops or fails; return its outcome."""
        horizon_url = self._cfg.resolved_horizon_url()
        log.info("Starting market poller daemon")
        log.info("  Account: %s", self._cfg.account)
        log.info("  Horizon: %s", horizon_url)
        log.info("  Interval: %.3fs", self._cfg.poll_interval)

        server = None
        if self.ledger is None or self.decoder is None:
            server = open_server(horizon_url)
        if self.ledger is None:
            self.ledger = HorizonLedgerQuery(
                server, self._cfg.include_failed, self._cfg.page_size,
            )
        if self.decoder is None:
            self.decoder = HorizonTransactionDecoder(
                server, self._cfg.account, self._cfg.page_size,
            )

        self.poller = EventPoller(
            self.ledger,
            self.decoder,
            self.queue,
            self._cfg.account,
            poll_interval=self._cfg.poll_interval,
        )
        if self._stop_requested:
            self.poller.stop()
        handle = self.poller.start()
        consumer = asyncio.create_task(self._consume(), name="event-consumer")
        try:
            outcome = await handle.join()
        finally:
            # join() shields the worker, so a cancelled daemon must end it here
            if not handle.done:
                handle.cancel()
                await handle.join()
            # Sentinel: consumer drains everything pushed before it
            await self.queue.put(None)
            await consumer
            if server is not None:
                await server.close()

        log.info(
            "Daemon shut down (%s, cursor: %s, %d batches, %d events)",
            outcome.reason.value,
            outcome.cursor,
            outcome.stats.batches_dispatched,
            outcome.stats.events_dispatched,
        )
        return outcome

    async def stop(self) -> None:
        """Signal the poller to stop gracefully."""
        log.info("Stop requested")
        self._stop_requested = True
        if self.poller is not None:
            self.poller.stop()

    async def _consume(self) -> None:
        while True:
            batch = await self.queue.get()
            if batch is None:
                return
            for event in batch.events:
                try:
                    self._emit(event)
                except Exception as exc:
                    log.error("Event handler failed for %s: %s", batch.signature, exc, exc_info=True)


async def run_daemon(cfg: PollerConfig, emit: EventHandler | None = None) -> PollerExit:
    """Entry point for running the daemon."""
    daemon = MarketPollerDaemon(cfg, emit)

    loop = asyncio.get_running_loop()

    def _signal_handler():
        asyncio.ensure_future(daemon.stop())

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _signal_handler)
        except NotImplementedError:
            # Windows doesn't support add_signal_handler
            pass

    return await daemon.start()
