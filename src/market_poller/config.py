"""Configuration loading: TOML file + environment variables."""

from __future__ import annotations

import os
from pathlib import Path

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:
    import tomli as tomllib  # type: ignore[no-redef]

from market_poller.errors import ConfigError
from market_poller.models.config import HORIZON_URLS, MAX_PAGE_SIZE, PollerConfig

_LOG_LEVELS = {"debug", "info", "warning", "error", "critical"}


def load_config(
    config_path: str | Path | None = None,
    env_prefix: str = "MARKET_POLLER_",
) -> PollerConfig:
    """Load poller configuration from a TOML file and env vars.

    Priority (highest wins):
        1. Environment variables (MARKET_POLLER_ACCOUNT, etc.)
        2. TOML config file
        3. Defaults from PollerConfig
    """
    raw: dict = {}
    if config_path is not None:
        p = Path(config_path).expanduser()
        if p.exists():
            with open(p, "rb") as f:
                try:
                    raw = tomllib.load(f)
                except tomllib.TOMLDecodeError as exc:
                    raise ConfigError(f"{p}: invalid TOML: {exc}") from None

    cfg = PollerConfig()

    # ── Poller section ─────────────────────────────────────
    poller = raw.get("poller", {})
    if (v := poller.get("poll_interval")) is not None:
        cfg.poll_interval = _number("poller.poll_interval", v, float)
    if v := poller.get("log_level"):
        cfg.log_level = str(v)

    # ── Stellar section ────────────────────────────────────
    stellar = raw.get("stellar", {})
    if v := stellar.get("network"):
        cfg.network = str(v)
    if v := stellar.get("horizon_url"):
        cfg.horizon_url = str(v)
    if v := stellar.get("account"):
        cfg.account = str(v)
    if (v := stellar.get("include_failed")) is not None:
        if not isinstance(v, bool):
            raise ConfigError(f"stellar.include_failed must be true or false, got {v!r}")
        cfg.include_failed = v
    if (v := stellar.get("page_size")) is not None:
        cfg.page_size = _number("stellar.page_size", v, int)

    # ── Output section ─────────────────────────────────────
    output = raw.get("output", {})
    if (v := output.get("queue_size")) is not None:
        cfg.queue_size = _number("output.queue_size", v, int)

    # ── Environment variable overrides (highest priority) ──
    if account := os.environ.get(f"{env_prefix}ACCOUNT"):
        cfg.account = account
    if net := os.environ.get(f"{env_prefix}NETWORK"):
        cfg.network = net
    if url := os.environ.get(f"{env_prefix}HORIZON_URL"):
        cfg.horizon_url = url
    if interval := os.environ.get(f"{env_prefix}POLL_INTERVAL"):
        try:
            cfg.poll_interval = float(interval)
        except ValueError:
            raise ConfigError(f"{env_prefix}POLL_INTERVAL is not a number: {interval!r}") from None

    validate_config(cfg)
    return cfg


def validate_config(cfg: PollerConfig) -> None:
    """Raise ConfigError for values the poller cannot run with.

    An empty account is allowed here; commands that need one check it.
    """
    if cfg.poll_interval <= 0:
        raise ConfigError(f"poll_interval must be positive, got {cfg.poll_interval}")
    if cfg.network not in HORIZON_URLS and not cfg.horizon_url:
        raise ConfigError(f"unknown network {cfg.network!r} and no horizon_url set")
    if not 1 <= cfg.page_size <= MAX_PAGE_SIZE:
        raise ConfigError(f"page_size must be between 1 and {MAX_PAGE_SIZE}, got {cfg.page_size}")
    if cfg.queue_size < 0:
        raise ConfigError(f"queue_size must not be negative, got {cfg.queue_size}")
    if cfg.log_level.lower() not in _LOG_LEVELS:
        raise ConfigError(f"unknown log_level {cfg.log_level!r}")


def _number(key: str, value, kind: type[int] | type[float]):
    """Convert a TOML value to int/float, rejecting booleans and junk."""
    if isinstance(value, bool):
        raise ConfigError(f"{key} must be a number, got {value!r}")
    try:
        number = kind(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{key} must be a number, got {value!r}") from None
    return number
