"""Tier 2 fixtures: a local fake Horizon server built with aiohttp.

Serves just enough of the Horizon REST API for the real stellar_sdk
ServerAsync client to page account transactions and read a
transaction's operations and effects.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import pytest
from aiohttp import web

from market_poller.stellar.horizon import open_server
from tests.factories import make_transaction_record

FAKE_HORIZON_PORT = 9310


def _page(records: list[dict], request: web.Request) -> web.Response:
    """Apply Horizon order/cursor/limit semantics to a record list."""
    order = request.query.get("order", "asc")
    limit = int(request.query.get("limit", "10"))
    cursor = request.query.get("cursor")

    def _key(record: dict) -> tuple[int, ...]:
        return tuple(int(part) for part in record["paging_token"].split("-"))

    ordered = sorted(records, key=_key, reverse=(order == "desc"))
    if cursor:
        boundary = _key({"paging_token": cursor})
        if order == "desc":
            ordered = [r for r in ordered if _key(r) < boundary]
        else:
            ordered = [r for r in ordered if _key(r) > boundary]
    return web.json_response({"_links": {}, "_embedded": {"records": ordered[:limit]}})


def _not_found() -> web.Response:
    return web.json_response(
        {
            "type": "https://stellar.org/horizon-errors/not_found",
            "title": "Resource Missing",
            "status": 404,
            "detail": "The resource at the url requested was not found.",
        },
        status=404,
    )


@dataclass
class FakeHorizon:
    """In-memory ledger state behind the fake server."""

    url: str = ""
    transactions: list[dict] = field(default_factory=list)  # oldest first
    operations: dict[str, list[dict]] = field(default_factory=dict)
    effects: dict[str, list[dict]] = field(default_factory=dict)
    requests: list[str] = field(default_factory=list)
    fail_listing: bool = False
    _ledger: int = 200000

    def confirm(
        self,
        tx_hash: str,
        operations: list[dict] | None = None,
        effects: list[dict] | None = None,
        successful: bool = True,
        result_xdr: str | None = None,
    ) -> None:
        """Append a transaction to the watched account's history."""
        self._ledger += 1
        self.transactions.append(
            make_transaction_record(
                tx_hash,
                self._ledger,
                str(self._ledger << 12),
                successful=successful,
                result_xdr=result_xdr,
            )
        )
        self.operations[tx_hash] = operations or []
        self.effects[tx_hash] = effects or []

    def app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/accounts/{account}/transactions", self._handle_account_txs)
        app.router.add_get("/transactions/{tx_hash}", self._handle_tx)
        app.router.add_get("/transactions/{tx_hash}/operations", self._handle_tx_ops)
        app.router.add_get("/transactions/{tx_hash}/effects", self._handle_tx_effects)
        return app

    async def _handle_account_txs(self, request: web.Request) -> web.Response:
        self.requests.append(str(request.rel_url))
        if self.fail_listing:
            return web.json_response(
                {"title": "Internal Server Error", "status": 500}, status=500,
            )
        records = self.transactions
        if request.query.get("include_failed") != "true":
            records = [r for r in records if r["successful"]]
        return _page(records, request)

    async def _handle_tx(self, request: web.Request) -> web.Response:
        tx_hash = request.match_info["tx_hash"]
        for record in self.transactions:
            if record["hash"] == tx_hash:
                return web.json_response(record)
        return _not_found()

    async def _handle_tx_ops(self, request: web.Request) -> web.Response:
        tx_hash = request.match_info["tx_hash"]
        if tx_hash not in self.operations:
            return _not_found()
        return _page(self.operations[tx_hash], request)

    async def _handle_tx_effects(self, request: web.Request) -> web.Response:
        tx_hash = request.match_info["tx_hash"]
        if tx_hash not in self.effects:
            return _not_found()
        return _page(self.effects[tx_hash], request)


@pytest.fixture
async def fake_horizon():
    """Running fake Horizon on localhost; yields its state object."""
    horizon = FakeHorizon(url=f"http://127.0.0.1:{FAKE_HORIZON_PORT}")
    runner = web.AppRunner(horizon.app())
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", FAKE_HORIZON_PORT)
    await site.start()
    yield horizon
    await runner.cleanup()


@pytest.fixture
async def horizon_server(fake_horizon):
    """Real stellar_sdk ServerAsync pointed at the fake Horizon."""
    server = open_server(fake_horizon.url)
    yield server
    await server.close()
