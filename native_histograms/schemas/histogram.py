import math
from datetime import datetime

from pydantic import BaseModel

from native_histograms.core.histogram import HistogramState, HistogramView


def _finite_or_none(value: float) -> float | None:
    return value if math.isfinite(value) else None


class BucketResponse(BaseModel):
    index: int
    lower: float | None
    upper: float | None
    count: int


class HistogramResponse(BaseModel):
    name: str
    count: int
    sum: float | None
    zero_count: int
    zero_threshold: float
    growth_factor: float | None
    log_growth_factor: float
    state: HistogramState
    downgrades: int
    rejected: int
    reset_requested: bool
    buckets: list[BucketResponse]
    created_at: datetime
    last_reset_at: datetime

    @classmethod
    def from_view(cls, view: HistogramView, reset_requested: bool = False) -> "HistogramResponse":
        buckets = []
        for index, count in view.buckets:
            lower, upper = view.bounds(index)
            buckets.append(
                BucketResponse(
                    index=index,
                    lower=_finite_or_none(lower),
                    upper=_finite_or_none(upper),
                    count=count,
                )
            )
        return cls(
            name=view.name,
            count=view.count,
            sum=_finite_or_none(view.sum),
            zero_count=view.zero_count,
            zero_threshold=view.zero_threshold,
            growth_factor=_finite_or_none(view.growth_factor),
            log_growth_factor=view.log_growth_factor,
            state=view.state,
            downgrades=view.downgrades,
            rejected=view.rejected,
            reset_requested=reset_requested,
            buckets=buckets,
            created_at=view.created_at,
            last_reset_at=view.last_reset_at,
        )
