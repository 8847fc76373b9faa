import math
from datetime import datetime
from typing import Union

from ..db import to_utc
from ..models import RateType

HOUR = 60 * 60
DAY = 24 * HOUR
MONTH = 30 * DAY

_UNIT_SECONDS = {
    RateType.HOURLY: HOUR,
    RateType.DAILY: DAY,
    RateType.MONTHLY: MONTH,
}


def billable_units(rate_type: Union[str, RateType], start: datetime, end: datetime) -> int:
    """Number of whole rate units in ``[start, end)``; a partial unit counts as one."""
    unit = _UNIT_SECONDS[RateType(rate_type)]
    span = (to_utc(end) - to_utc(start)).total_seconds()
    return math.ceil(span / unit)


def compute_total(rate_type: Union[str, RateType], rate_amount: float, start: datetime, end: datetime) -> float:
    return round(billable_units(rate_type, start, end) * float(rate_amount), 2)
