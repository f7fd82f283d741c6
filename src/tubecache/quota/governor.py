"""Daily quota governor for cost-weighted remote API calls."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import date, timedelta

from tubecache.cache.engine import CacheEngine
from tubecache.errors.exceptions import ConfigurationError, QuotaExhausted
from tubecache.types import QuotaState, QuotaStatus

logger = logging.getLogger(__name__)

_PREF_PREFIX = "quota_used_"


def quota_pref_key(date_key: str) -> str:
    return f"{_PREF_PREFIX}{date_key}"


class Reservation:
    """Budget held for one in-flight call and its retries.

    ``commit()`` records one billed response from the remote side; each
    response consumes ``cost`` units on release. ``extend()`` holds budget
    for one more attempt and returns False when today's budget cannot
    cover it. Held but unanswered attempts are released for free.
    """

    def __init__(self, governor: QuotaGovernor, cost: int) -> None:
        self.cost = cost
        self.responses = 0
        self.held = 1
        self._governor = governor

    @property
    def committed(self) -> bool:
        return self.responses > 0

    @property
    def units(self) -> int:
        return self.cost * self.responses

    def commit(self) -> None:
        self.responses += 1

    def extend(self) -> bool:
        if not self._governor._hold(self.cost):
            return False
        self.held += 1
        return True


class QuotaGovernor:
    """Tracks a per-calendar-day budget of cost units.

    The counter for a day is persisted as a preference keyed by the local
    ISO date, and day rollover happens lazily on first access, so restarts
    and overnight processes both see the right counter.

    Tolerance: ``admit`` and ``consume`` are individually atomic, but the
    network call between them is not. Concurrent callers that go through
    ``reserve`` are accounted against each other; callers that use bare
    ``admit``/``consume`` can overshoot by at most one call's cost.
    """

    def __init__(
        self,
        engine: CacheEngine,
        daily_limit: int = 10_000,
        today: Callable[[], date] = date.today,
        on_change: Callable[[QuotaState], None] | None = None,
        retention_days: int | None = None,
    ) -> None:
        if daily_limit < 0:
            raise ConfigurationError(f"daily_limit must be non-negative, got {daily_limit}")
        self._engine = engine
        self._daily_limit = daily_limit
        self._today = today
        self._on_change = on_change
        self._lock = threading.RLock()

        self._date_key = ""
        self._units = 0
        self._pending = 0

        with self._lock:
            self._roll()
        if retention_days is not None:
            self.purge_stale(retention_days)

    @property
    def daily_limit(self) -> int:
        return self._daily_limit

    @property
    def units_consumed(self) -> int:
        with self._lock:
            self._roll()
            return self._units

    @property
    def status(self) -> QuotaStatus:
        return QuotaStatus.EXHAUSTED if self.remaining() == 0 else QuotaStatus.AVAILABLE

    @property
    def exhausted(self) -> bool:
        return self.status is QuotaStatus.EXHAUSTED

    @property
    def usage_percentage(self) -> float:
        if self._daily_limit == 0:
            return 100.0
        return self.units_consumed / self._daily_limit * 100

    def admit(self, cost: int) -> bool:
        """Would a call of ``cost`` fit in today's budget? Pure query."""
        _check_cost(cost)
        with self._lock:
            self._roll()
            units, pending = self._units, self._pending
        allowed = units + pending + cost <= self._daily_limit
        if not allowed:
            logger.warning(
                "Quota would be exceeded: %d used, %d pending, cost %d, limit %d",
                units, pending, cost, self._daily_limit,
            )
        return allowed

    def consume(self, cost: int) -> None:
        """Record ``cost`` units for a call that actually executed."""
        _check_cost(cost)
        with self._lock:
            self._roll()
            self._units += cost
            self._persist()
            state = self._snapshot()
        logger.info("Quota updated: %d/%d", state.units_consumed, self._daily_limit)
        self._notify(state)

    def remaining(self) -> int:
        with self._lock:
            self._roll()
            return max(0, self._daily_limit - self._units)

    def reset_today(self) -> None:
        """Administrative override: zero today's counter."""
        with self._lock:
            self._roll()
            self._units = 0
            self._persist()
            state = self._snapshot()
        logger.info("Daily quota reset for %s", state.date_key)
        self._notify(state)

    @contextmanager
    def reserve(self, cost: int) -> Iterator[Reservation]:
        """Admit and hold ``cost`` units for the duration of one call.

        Raises QuotaExhausted when the call does not fit. On exit every
        committed response consumes ``cost`` units and the rest of the
        held budget is released.
        """
        _check_cost(cost)
        if not self._hold(cost):
            remaining = self.remaining()
            raise QuotaExhausted(
                f"Quota exhausted: cost {cost} exceeds remaining {remaining}",
                cost=cost,
                remaining=remaining,
            )
        reservation = Reservation(self, cost)
        try:
            yield reservation
        finally:
            with self._lock:
                self._pending -= cost * reservation.held
                if reservation.committed:
                    self.consume(reservation.units)

    def _hold(self, cost: int) -> bool:
        with self._lock:
            if not self.admit(cost):
                return False
            self._pending += cost
            return True

    def snapshot(self) -> QuotaState:
        with self._lock:
            self._roll()
            return self._snapshot()

    def purge_stale(self, retain_days: int) -> int:
        """Delete persisted counters older than ``retain_days`` days."""
        if retain_days < 1:
            raise ConfigurationError(f"retain_days must be at least 1, got {retain_days}")
        cutoff = (self._today() - timedelta(days=retain_days - 1)).isoformat()
        purged = 0
        for key in self._engine.pref_keys():
            if not key.startswith(_PREF_PREFIX):
                continue
            date_key = key[len(_PREF_PREFIX):]
            if date_key < cutoff:
                self._engine.remove_pref(key)
                purged += 1
        if purged:
            logger.info("Purged %d stale quota counters", purged)
        return purged

    def _roll(self) -> None:
        """Switch to today's counter if the calendar day changed."""
        date_key = self._today().isoformat()
        if date_key == self._date_key:
            return
        previous = self._date_key
        stored = self._engine.get_pref(quota_pref_key(date_key), 0)
        self._date_key = date_key
        self._units = stored if isinstance(stored, int) and stored >= 0 else 0
        if previous:
            logger.info("Quota day rolled over from %s to %s", previous, date_key)
        else:
            logger.debug("Quota loaded for %s: %d used", date_key, self._units)

    def _persist(self) -> None:
        self._engine.set_pref(quota_pref_key(self._date_key), self._units)

    def _snapshot(self) -> QuotaState:
        status = (
            QuotaStatus.EXHAUSTED
            if self._units >= self._daily_limit
            else QuotaStatus.AVAILABLE
        )
        return QuotaState(
            date_key=self._date_key,
            units_consumed=self._units,
            daily_limit=self._daily_limit,
            status=status,
        )

    def _notify(self, state: QuotaState) -> None:
        if self._on_change is None:
            return
        try:
            self._on_change(state)
        except Exception:
            logger.exception("Quota change callback failed")


def _check_cost(cost: int) -> None:
    if cost < 0:
        raise ConfigurationError(f"cost must be non-negative, got {cost}")
