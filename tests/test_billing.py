from datetime import datetime

import pytest

from fleetdesk.models import RateType
from fleetdesk.services.billing import billable_units, compute_total

from .conftest import utc


def test_daily_whole_days():
    assert compute_total("daily", 1000, utc(2024, 1, 1), utc(2024, 1, 3)) == 2000


def test_daily_partial_day_billed_as_full_day():
    assert compute_total(RateType.DAILY, 1000, utc(2024, 1, 1, 10), utc(2024, 1, 2, 9)) == 1000
    assert compute_total(RateType.DAILY, 1000, utc(2024, 1, 1, 10), utc(2024, 1, 2, 11)) == 2000


def test_hourly_rounds_up():
    assert billable_units("hourly", utc(2024, 1, 1, 10), utc(2024, 1, 1, 11, 30)) == 2
    assert compute_total("hourly", 150, utc(2024, 1, 1, 10), utc(2024, 1, 1, 13)) == 450


@pytest.mark.parametrize(
    "end, months",
    [
        (utc(2024, 1, 31), 1),
        (utc(2024, 2, 1), 2),
        (utc(2024, 3, 1), 2),
    ],
)
def test_monthly_uses_thirty_day_months(end, months):
    assert billable_units("monthly", utc(2024, 1, 1), end) == months


def test_naive_timestamps_are_treated_as_utc():
    assert compute_total("daily", 500, datetime(2024, 1, 1), utc(2024, 1, 2)) == 500


def test_fractional_rates_are_rounded_to_cents():
    assert compute_total("daily", 33.333, utc(2024, 1, 1), utc(2024, 1, 4)) == 100.0


def test_unknown_rate_type_is_rejected():
    with pytest.raises(ValueError):
        compute_total("weekly", 100, utc(2024, 1, 1), utc(2024, 1, 8))
