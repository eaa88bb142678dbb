import math
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import StrEnum

from native_histograms.core.exceptions import InvalidObservation

DEFAULT_ZERO_THRESHOLD = 2.0**-128


class HistogramState(StrEnum):
    ACTIVE = "active"
    DEGRADED = "degraded"


def bucket_index(value: float, growth_factor: float) -> int:
    return _index_for_log(math.log(value), math.log(growth_factor))


def bucket_bounds(index: int, growth_factor: float) -> tuple[float, float]:
    """Return ``(lower, upper)`` of bucket ``index``; values in it satisfy lower < v <= upper."""
    return _power(growth_factor, index - 1), _power(growth_factor, index)


def _power(base: float, exponent: int) -> float:
    # Overflow means the bound lies past the largest float.
    try:
        return base**exponent
    except OverflowError:
        return math.inf


def _index_for_log(log_value: float, log_growth: float) -> int:
    return math.ceil(log_value / log_growth)


def _coarser_index(index: int) -> int:
    # Squaring the growth factor folds buckets 2j-1 and 2j into bucket j.
    return (index + 1) // 2


@dataclass(frozen=True)
class HistogramView:
    name: str
    count: int
    sum: float
    zero_count: int
    zero_threshold: float
    growth_factor: float
    log_growth_factor: float
    state: HistogramState
    downgrades: int
    rejected: int
    buckets: tuple[tuple[int, int], ...]
    created_at: datetime
    last_reset_at: datetime

    def bounds(self, index: int) -> tuple[float, float]:
        return bucket_bounds(index, self.growth_factor)


class NativeHistogram:
    """Exponential-bucket histogram whose resolution coarsens to stay under ``max_buckets``.

    Observations go to bucket ``ceil(log(v) / log(growth_factor))`` or to the zero
    bucket when ``v <= zero_threshold``. When the number of populated buckets would
    exceed ``max_buckets`` the growth factor is squared and neighbouring buckets are
    merged until the budget holds again. Only a reset restores the configured
    resolution, and resets are rate limited by ``min_reset_interval``.
    """

    def __init__(
        self,
        name: str,
        growth_factor: float = 1.1,
        max_buckets: int = 100,
        min_reset_interval: timedelta = timedelta(0),
        zero_threshold: float = DEFAULT_ZERO_THRESHOLD,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        if not growth_factor > 1:
            raise ValueError("growth_factor must be greater than 1")
        if max_buckets < 2:
            raise ValueError("max_buckets must be at least 2")
        if min_reset_interval < timedelta(0):
            raise ValueError("min_reset_interval must not be negative")
        if not zero_threshold >= 0:
            raise ValueError("zero_threshold must not be negative")

        self.name = name
        self.initial_growth_factor = growth_factor
        self.max_buckets = max_buckets
        self.min_reset_interval = min_reset_interval
        self.zero_threshold = zero_threshold
        self._clock = clock or (lambda: datetime.now(UTC))
        self._lock = threading.Lock()

        self.created_at = self._clock()
        self._last_reset_at = self.created_at
        self._reset_requested = False
        self._rejected = 0
        self._clear()

    def _clear(self) -> None:
        self._growth = self.initial_growth_factor
        self._log_growth = math.log(self._growth)
        self._downgrades = 0
        self._buckets: dict[int, int] = {}
        self._zero_count = 0
        self._count = 0
        self._sum = 0.0

    @property
    def growth_factor(self) -> float:
        return self._growth

    @property
    def state(self) -> HistogramState:
        return HistogramState.DEGRADED if self._downgrades else HistogramState.ACTIVE

    @property
    def reset_requested(self) -> bool:
        return self._reset_requested

    def observe(self, value: float) -> None:
        if isinstance(value, (str, bytes, bytearray)):
            self._reject()
            raise InvalidObservation(self.name, value)
        try:
            value = float(value)
        except (TypeError, ValueError):
            self._reject()
            raise InvalidObservation(self.name, value) from None
        if not math.isfinite(value) or value < 0:
            self._reject()
            raise InvalidObservation(self.name, value)

        with self._lock:
            self._count += 1
            self._sum += value
            if value <= self.zero_threshold:
                self._zero_count += 1
                return

            index = _index_for_log(math.log(value), self._log_growth)
            self._buckets[index] = self._buckets.get(index, 0) + 1
            while len(self._buckets) > self.max_buckets:
                self._downgrade()

    def _reject(self) -> None:
        with self._lock:
            self._rejected += 1

    def _downgrade(self) -> None:
        merged: dict[int, int] = {}
        for index, count in self._buckets.items():
            coarse = _coarser_index(index)
            merged[coarse] = merged.get(coarse, 0) + count
        self._buckets = merged
        self._growth *= self._growth
        self._log_growth *= 2
        self._downgrades += 1

    def request_reset(self) -> None:
        with self._lock:
            self._reset_requested = True

    def reset(self, now: datetime | None = None) -> bool:
        current_time = now or self._clock()
        with self._lock:
            return self._reset_if_due(current_time)

    def _reset_if_due(self, now: datetime) -> bool:
        if now - self._last_reset_at < self.min_reset_interval:
            return False
        self._clear()
        self._last_reset_at = now
        self._reset_requested = False
        return True

    def snapshot(self, now: datetime | None = None) -> HistogramView:
        current_time = now or self._clock()
        with self._lock:
            if self._reset_requested:
                self._reset_if_due(current_time)
            buckets = dict(self._buckets)
            count = self._count
            total = self._sum
            zero_count = self._zero_count
            growth = self._growth
            log_growth = self._log_growth
            downgrades = self._downgrades
            rejected = self._rejected
            last_reset_at = self._last_reset_at

        return HistogramView(
            name=self.name,
            count=count,
            sum=total,
            zero_count=zero_count,
            zero_threshold=self.zero_threshold,
            growth_factor=growth,
            log_growth_factor=log_growth,
            state=HistogramState.DEGRADED if downgrades else HistogramState.ACTIVE,
            downgrades=downgrades,
            rejected=rejected,
            buckets=tuple(sorted(buckets.items())),
            created_at=self.created_at,
            last_reset_at=last_reset_at,
        )
