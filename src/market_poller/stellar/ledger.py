"""Horizon-backed LedgerQuery - lists an account's transaction hashes."""

from __future__ import annotations

import logging
from typing import Any

from stellar_sdk import ServerAsync
from stellar_sdk.exceptions import BaseRequestError

from market_poller.errors import FetchError
from market_poller.models.config import MAX_PAGE_SIZE
from market_poller.models.ledger import Commitment, SignatureInfo
from market_poller.stellar.horizon import records_of

log = logging.getLogger(__name__)


def _to_info(record: dict[str, Any]) -> SignatureInfo:
    return SignatureInfo(
        signature=record["hash"],
        ledger=int(record.get("ledger", 0)),
        created_at=record.get("created_at", ""),
        successful=bool(record.get("successful", True)),
        paging_token=record["paging_token"],
    )


class HorizonLedgerQuery:
    """Lists confirmed transactions for an account, most-recent-first.

    Horizon only serves closed ledgers and Stellar ledgers are final once
    closed, so every commitment level is satisfied by what it returns.
    The ``until`` boundary is applied client-side while paging backward
    through history in descending order.
    """

    def __init__(
        self,
        server: ServerAsync,
        include_failed: bool = False,
        page_size: int = MAX_PAGE_SIZE,
    ) -> None:
        self._server = server
        self._include_failed = include_failed
        self._page_size = page_size

    async def fetch(
        self,
        address: str,
        until: str | None = None,
        limit: int | None = None,
        commitment: Commitment = Commitment.CONFIRMED,
    ) -> list[SignatureInfo]:
        try:
            return await self._fetch(address, until, limit)
        except BaseRequestError as exc:
            log.error("Transaction listing for %s failed: %s", address, exc)
            raise FetchError(f"transaction listing for {address} failed: {exc}") from exc
        except (KeyError, TypeError, ValueError) as exc:
            raise FetchError(f"malformed Horizon response for {address}: {exc!r}") from exc

    async def _fetch(
        self,
        address: str,
        until: str | None,
        limit: int | None,
    ) -> list[SignatureInfo]:
        page_size = self._page_size if limit is None else min(limit, self._page_size)
        collected: list[SignatureInfo] = []
        paging_token: str | None = None

        while True:
            builder = (
                self._server.transactions()
                .for_account(address)
                .include_failed(self._include_failed)
                .order(desc=True)
                .limit(page_size)
            )
            if paging_token is not None:
                builder = builder.cursor(paging_token)
            page = records_of(await builder.call())

            for record in page:
                info = _to_info(record)
                if until is not None and info.signature == until:
                    return collected
                collected.append(info)
                if limit is not None and len(collected) >= limit:
                    return collected

            if len(page) < page_size:
                break
            paging_token = page[-1]["paging_token"]

        if until is not None:
            # Boundary fell out of the served history window
            log.warning(
                "Boundary %s not found for %s; returning %d signatures",
                until, address, len(collected),
            )
        return collected
