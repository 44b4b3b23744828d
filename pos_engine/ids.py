"""Identifier generation.

Transaction ids are ``{branch}-{yyMMdd}-{sequence}`` with the sequence
restarting each local day per branch. Held, prescription and return ids are
time based; each generator keeps its own ids unique even when the clock
repeats a value.
"""

from __future__ import annotations

import threading
from datetime import datetime, timezone, tzinfo
from typing import Callable, Optional

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def local_time(ts: datetime, tz: Optional[tzinfo] = None) -> datetime:
    """Express a timestamp in the register's local time.

    Naive timestamps are taken to be local already. With ``tz`` unset, aware
    timestamps convert to the system's local zone.
    """
    if ts.tzinfo is None:
        return ts
    return ts.astimezone(tz)


class TransactionIdGenerator:
    """Branch-date-sequence ids, monotonic within a branch and day."""

    def __init__(self, branch_id: str, clock: Clock = utc_now, tz: Optional[tzinfo] = None):
        self.branch_id = branch_id
        self._clock = clock
        self._tz = tz
        self._day: Optional[str] = None
        self._sequence = 0
        self._lock = threading.Lock()

    def next_id(self) -> str:
        day = local_time(self._clock(), self._tz).strftime("%y%m%d")
        with self._lock:
            if day != self._day:
                self._day = day
                self._sequence = 0
            self._sequence += 1
            return f"{self.branch_id}-{day}-{self._sequence:05d}"


class TimestampIdGenerator:
    """``{prefix}-{yyyyMMdd-HHmmss}`` ids with a ``-N`` suffix on collision."""

    def __init__(
        self,
        prefix: str,
        clock: Clock = utc_now,
        tz: Optional[tzinfo] = None,
        fmt: str = "%Y%m%d-%H%M%S",
    ):
        self.prefix = prefix
        self._clock = clock
        self._tz = tz
        self._fmt = fmt
        self._last_stamp = ""
        self._collisions = 0
        self._lock = threading.Lock()

    def next_id(self) -> str:
        stamp = local_time(self._clock(), self._tz).strftime(self._fmt)
        with self._lock:
            if stamp == self._last_stamp:
                self._collisions += 1
                return f"{self.prefix}-{stamp}-{self._collisions + 1}"
            self._last_stamp = stamp
            self._collisions = 0
            return f"{self.prefix}-{stamp}"


class MillisecondIdGenerator:
    """``{prefix}{epoch milliseconds}`` ids, strictly increasing."""

    def __init__(self, prefix: str, clock: Clock = utc_now):
        self.prefix = prefix
        self._clock = clock
        self._last = 0
        self._lock = threading.Lock()

    def next_id(self) -> str:
        millis = int(self._clock().timestamp() * 1000)
        with self._lock:
            if millis <= self._last:
                millis = self._last + 1
            self._last = millis
            return f"{self.prefix}{millis}"
