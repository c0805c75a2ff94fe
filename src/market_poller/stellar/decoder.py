"""Horizon-backed TransactionDecoder - offers and fills for one account."""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Sequence

from stellar_sdk import ServerAsync, xdr
from stellar_sdk.exceptions import BaseRequestError

from market_poller.errors import DecodeError
from market_poller.models.config import MAX_PAGE_SIZE
from market_poller.models.events import (
    FillEvent,
    MarketEvent,
    OfferCancelledEvent,
    OfferPlacedEvent,
)
from market_poller.stellar.horizon import fetch_all

log = logging.getLogger(__name__)

# Operation type -> (side, passive)
_OFFER_OPS = {
    "manage_sell_offer": ("sell", False),
    "manage_buy_offer": ("buy", False),
    "create_passive_sell_offer": ("sell", True),
}

_ZERO = Decimal(0)


def _asset(record: dict[str, Any], prefix: str) -> str:
    """Canonical asset string: ``native`` or ``CODE:ISSUER``."""
    if record[f"{prefix}_asset_type"] == "native":
        return "native"
    return f"{record[f'{prefix}_asset_code']}:{record[f'{prefix}_asset_issuer']}"


def _operation_id(effect: dict[str, Any]) -> str:
    """Effect paging tokens are ``{operation_id}-{index}``."""
    return effect["paging_token"].split("-")[0]


def _offer_event(
    op: dict[str, Any],
    signature: str,
    ledger: int,
    offer_id: int | None = None,
) -> MarketEvent:
    side, passive = _OFFER_OPS[op["type"]]
    amount = Decimal(op["amount"])
    if offer_id is None:
        offer_id = int(op.get("offer_id") or 0)
    if amount == _ZERO:
        return OfferCancelledEvent(
            signature=signature,
            ledger_sequence=ledger,
            operation_id=op["id"],
            account=op["source_account"],
            offer_id=offer_id,
            selling=_asset(op, "selling"),
            buying=_asset(op, "buying"),
        )
    return OfferPlacedEvent(
        signature=signature,
        ledger_sequence=ledger,
        operation_id=op["id"],
        account=op["source_account"],
        offer_id=offer_id,
        side=side,
        selling=_asset(op, "selling"),
        buying=_asset(op, "buying"),
        amount=amount,
        price=Decimal(op["price"]),
        passive=passive,
    )


def _fill_event(
    effect: dict[str, Any],
    op: dict[str, Any],
    signature: str,
    ledger: int,
) -> FillEvent:
    return FillEvent(
        signature=signature,
        ledger_sequence=ledger,
        operation_id=op["id"],
        account=effect["account"],
        counterparty=effect["seller"],
        offer_id=int(effect.get("offer_id") or 0),
        sold=_asset(effect, "sold"),
        sold_amount=Decimal(effect["sold_amount"]),
        bought=_asset(effect, "bought"),
        bought_amount=Decimal(effect["bought_amount"]),
        maker=op["source_account"] != effect["account"],
    )


def resting_offers(result_xdr: str | None) -> dict[int, int | None]:
    """Read offer outcomes from a transaction's ``result_xdr``.

    Maps the index of each successful offer operation to the id of the
    offer it left on the book, or None when nothing rests (the offer was
    cancelled or filled completely). Fee-bump results are unwrapped.
    """
    if not result_xdr:
        return {}
    result = xdr.TransactionResult.from_xdr(result_xdr).result
    if result.inner_result_pair is not None:
        result = result.inner_result_pair.result.result

    resting: dict[int, int | None] = {}
    for index, op_result in enumerate(result.results or []):
        tr = op_result.tr
        if tr is None:
            continue
        offer_result = (
            tr.manage_sell_offer_result
            or tr.manage_buy_offer_result
            or tr.create_passive_sell_offer_result
        )
        if offer_result is None or offer_result.success is None:
            continue
        outcome = offer_result.success.offer
        if outcome.effect == xdr.ManageOfferEffect.MANAGE_OFFER_DELETED:
            resting[index] = None
        else:
            resting[index] = outcome.offer.offer_id.int64
    return resting


def decode_records(
    account: str,
    signature: str,
    ledger: int,
    operations: Sequence[dict[str, Any]],
    effects: Sequence[dict[str, Any]],
    resting: dict[int, int | None] | None = None,
) -> list[MarketEvent]:
    """Map Horizon operation and effect records to market events.

    Events follow operation order. Within one operation the fills it
    produced come first, then the offer that rests (or is cancelled).

    ``resting`` comes from :func:`resting_offers`. With it, new offers carry
    their ledger-assigned id and an offer filled completely yields only its
    fills. Without it the offer id is taken from the operation body.
    """
    resting = resting or {}
    trades_by_op: dict[str, list[dict[str, Any]]] = {}
    for effect in effects:
        if effect["type"] == "trade" and effect["account"] == account:
            trades_by_op.setdefault(_operation_id(effect), []).append(effect)

    events: list[MarketEvent] = []
    for index, op in enumerate(operations):
        for effect in trades_by_op.get(op["id"], []):
            events.append(_fill_event(effect, op, signature, ledger))
        if op["type"] not in _OFFER_OPS or op["source_account"] != account:
            continue
        if index not in resting:
            events.append(_offer_event(op, signature, ledger))
        elif (offer_id := resting[index]) is not None:
            events.append(_offer_event(op, signature, ledger, offer_id))
        elif Decimal(op["amount"]) == _ZERO:
            events.append(_offer_event(op, signature, ledger))
        else:
            log.debug("Offer in op %s of %s filled completely", op["id"], signature)
    return events


class HorizonTransactionDecoder:
    """Decodes DEX activity of one account from a transaction via Horizon."""

    def __init__(
        self,
        server: ServerAsync,
        account: str,
        page_size: int = MAX_PAGE_SIZE,
    ) -> None:
        self._server = server
        self._account = account
        self._page_size = page_size

    async def decode(self, signature: str) -> list[MarketEvent]:
        try:
            tx = await self._server.transactions().transaction(signature).call()
            if not tx.get("successful", True):
                log.debug("Transaction %s failed on-ledger, no events", signature)
                return []

            operations = await fetch_all(
                lambda: self._server.operations().for_transaction(signature),
                self._page_size,
            )
            effects = await fetch_all(
                lambda: self._server.effects().for_transaction(signature),
                self._page_size,
            )
            try:
                resting = resting_offers(tx.get("result_xdr"))
            except Exception as exc:
                raise DecodeError(signature, f"undecodable result_xdr: {exc!r}") from exc
            return decode_records(
                self._account, signature, int(tx["ledger"]), operations, effects, resting,
            )
        except BaseRequestError as exc:
            raise DecodeError(signature, f"Horizon request failed: {exc}") from exc
        except (KeyError, TypeError, ValueError, InvalidOperation) as exc:
            raise DecodeError(signature, f"malformed record: {exc!r}") from exc
