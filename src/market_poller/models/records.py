"""Runtime records produced by the poller worker."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class ExitReason(str, Enum):
    """Why the worker terminated."""

    STOPPED = "stopped"  # stop() or task cancellation
    FAILED = "failed"  # fetch or dispatch failure (fail-stop)


@dataclass
class PollerStats:
    """Counters maintained by the worker across cycles."""

    cycles: int = 0
    signatures_seen: int = 0
    batches_dispatched: int = 0
    events_dispatched: int = 0
    decode_failures: int = 0
    last_poll_at: datetime | None = None


@dataclass
class PollerExit:
    """Outcome returned by ``PollerHandle.join()``."""

    reason: ExitReason
    cursor: str | None = None
    error: BaseException | None = None
    stats: PollerStats = field(default_factory=PollerStats)

    @property
    def failed(self) -> bool:
        return self.reason == ExitReason.FAILED
