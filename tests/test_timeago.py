"""
Tests for relative age labels.
"""
from datetime import datetime, timedelta, timezone

import pytest
from vibe.timeago import age_label

NOW = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize("delta,label", [
    (timedelta(seconds=0), "0s"),
    (timedelta(seconds=45), "45s"),
    (timedelta(minutes=5, seconds=59), "5m"),
    (timedelta(hours=3), "3h"),
    (timedelta(days=3, hours=23), "3d"),
    (timedelta(days=65), "2mo"),
    (timedelta(days=400), "1y"),
])
def test_age_label(delta, label):
    assert age_label(NOW - delta, NOW) == label


def test_naive_datetimes_are_treated_as_utc():
    naive = (NOW - timedelta(hours=1)).replace(tzinfo=None)
    assert age_label(naive, NOW) == "1h"


def test_future_moments_clamp_to_zero():
    assert age_label(NOW + timedelta(minutes=2), NOW) == "0s"
