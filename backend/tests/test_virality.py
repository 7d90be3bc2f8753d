from datetime import datetime, timedelta, timezone

from folio.services import virality

NOW = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)


def test_age_in_days_is_at_least_one():
    assert virality.age_in_days(None, NOW) == 1
    assert virality.age_in_days(NOW - timedelta(hours=3), NOW) == 1
    assert virality.age_in_days(NOW - timedelta(days=10, hours=2), NOW) == 10


def test_age_accepts_naive_datetimes():
    naive = (NOW - timedelta(days=4)).replace(tzinfo=None)

    assert virality.age_in_days(naive, NOW) == 4


def test_views_per_day_divides_by_age():
    metrics = virality.derive_metrics(5000, 100, 20, NOW - timedelta(days=10), now=NOW)

    assert metrics.age_in_days == 10
    assert metrics.views_per_day == 500.0
    assert metrics.engagement_rate == 2.4


def test_velocity_thresholds_without_subscribers():
    assert virality.viral_velocity(200_000) == 95
    assert virality.viral_velocity(60_000) == 85
    assert virality.viral_velocity(20_000) == 70
    assert virality.viral_velocity(5_000) == 50
    assert virality.viral_velocity(500) == 30
    assert virality.viral_velocity(50) == 10


def test_velocity_relative_to_subscribers_is_capped():
    assert virality.viral_velocity(1_000, subscribers=100_000) == 50.0
    assert virality.viral_velocity(1_000_000, subscribers=100_000) == 100.0


def test_growth_rate_against_first_snapshot():
    assert virality.growth_rate(1500, 1000) == 50.0
    assert virality.growth_rate(1500, None) is None
    assert virality.growth_rate(None, 1000) is None


def test_engagement_rate_with_no_views():
    assert virality.engagement_rate(0, 10, 10) == 0.0
