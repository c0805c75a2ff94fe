"""CLI entry point for the market poller."""

from __future__ import annotations

import asyncio
import json
import logging
import sys

import click

from market_poller.config import load_config
from market_poller.daemon import run_daemon
from market_poller.errors import ConfigError, DecodeError, FetchError
from market_poller.models.config import PollerConfig
from market_poller.models.events import MarketEvent, event_to_dict
from market_poller.stellar.decoder import HorizonTransactionDecoder
from market_poller.stellar.horizon import open_server
from market_poller.stellar.ledger import HorizonLedgerQuery


def _echo_event(event: MarketEvent) -> None:
    click.echo(json.dumps(event_to_dict(event), sort_keys=True))


def _load(ctx: click.Context) -> PollerConfig:
    try:
        cfg = load_config(ctx.obj["config_path"])
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)
    if ctx.obj["account"]:
        cfg.account = ctx.obj["account"]
    return cfg


def _require_account(cfg: PollerConfig) -> None:
    """Exit with error if no watched account is configured."""
    if not cfg.account:
        click.echo("Error: No account configured.", err=True)
        click.echo("Set MARKET_POLLER_ACCOUNT, pass --account, or set account in config.", err=True)
        sys.exit(1)


@click.group()
@click.option("-c", "--config", "config_path", default=None, help="Path to config TOML file")
@click.option("-a", "--account", default=None, help="Stellar account to watch")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, account: str | None, verbose: bool) -> None:
    """market-poller - ordered Stellar DEX events for one account."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["account"] = account
    ctx.obj["verbose"] = verbose

    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )


# ── Poller ─────────────────────────────────────────────


@cli.command()
@click.pass_context
def run(ctx: click.Context) -> None:
    """Poll the account and print each event as a JSON line."""
    cfg = _load(ctx)
    _require_account(cfg)
    if not ctx.obj["verbose"]:
        logging.getLogger().setLevel(cfg.log_level.upper())

    click.echo(f"Watching {cfg.account} every {cfg.poll_interval}s", err=True)
    outcome = asyncio.run(run_daemon(cfg, emit=_echo_event))
    if outcome.failed:
        click.echo(f"Error: poller stopped: {outcome.error}", err=True)
        sys.exit(1)


# ── Info ───────────────────────────────────────────────


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show the effective configuration."""
    cfg = _load(ctx)
    click.echo(f"Network:        {cfg.network}")
    click.echo(f"Horizon URL:    {cfg.resolved_horizon_url()}")
    click.echo(f"Account:        {cfg.account or '(not set)'}")
    click.echo(f"Poll interval:  {cfg.poll_interval}s")
    click.echo(f"Include failed: {'yes' if cfg.include_failed else 'no'}")
    click.echo(f"Page size:      {cfg.page_size}")
    click.echo(f"Queue size:     {cfg.queue_size or 'unbounded'}")


@cli.command()
@click.pass_context
def latest(ctx: click.Context) -> None:
    """Print the newest confirmed transaction for the account."""
    cfg = _load(ctx)
    _require_account(cfg)

    async def _latest():
        server = open_server(cfg.resolved_horizon_url())
        try:
            query = HorizonLedgerQuery(server, cfg.include_failed, cfg.page_size)
            return await query.fetch(cfg.account, limit=1)
        finally:
            await server.close()

    try:
        signatures = asyncio.run(_latest())
    except FetchError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    if not signatures:
        click.echo("No transactions found.")
        return
    info = signatures[0]
    click.echo(f"Signature:  {info.signature}")
    click.echo(f"Ledger:     {info.ledger}")
    click.echo(f"Created at: {info.created_at}")
    click.echo(f"Successful: {'yes' if info.successful else 'no'}")


@cli.command()
@click.argument("signature")
@click.pass_context
def decode(ctx: click.Context, signature: str) -> None:
    """Decode one transaction and print its events as JSON lines."""
    cfg = _load(ctx)
    _require_account(cfg)

    async def _decode():
        server = open_server(cfg.resolved_horizon_url())
        try:
            decoder = HorizonTransactionDecoder(server, cfg.account, cfg.page_size)
            return await decoder.decode(signature)
        finally:
            await server.close()

    try:
        events = asyncio.run(_decode())
    except DecodeError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    if not events:
        click.echo("No market events for this account.", err=True)
    for event in events:
        _echo_event(event)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
