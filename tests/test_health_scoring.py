"""Tests for health scoring and risk classification."""

import pytest

from health_scoring import (
    HEALTH_WEIGHTS,
    assess_risk,
    calculate_health_breakdown,
    calculate_health_score,
    calculate_risk_level,
)
from models import RiskLevel


def test_weights_sum_to_one():
    assert sum(HEALTH_WEIGHTS.values()) == pytest.approx(1.0)


def test_health_score_strong_partner():
    score = calculate_health_score(
        revenue_attainment=100,
        pipeline_coverage=200,
        pipeline_conversion=40,
        training_completion_rate=90,
        portal_logins=20,
        customer_satisfaction=4.5,
        deal_win_rate=30,
        avg_days_to_close=60
    )
    # 20 + 22 + 11.75 + 9 + 2.875 = 65.625
    assert score == 66
    assert 0 <= score <= 100


def test_health_breakdown_components():
    breakdown = calculate_health_breakdown(100, 200, 40, 90, 20, 4.5, 30, 60)

    assert breakdown.revenue == pytest.approx(50)
    assert breakdown.pipeline == pytest.approx(73.333, abs=0.001)
    assert breakdown.engagement == pytest.approx(78.333, abs=0.001)
    assert breakdown.customer_satisfaction == pytest.approx(90)
    assert breakdown.velocity == pytest.approx(57.5)
    assert breakdown.weighted_total == pytest.approx(65.625)
    assert sum(breakdown.weighted_components().values()) == pytest.approx(65.625)


def test_health_score_poor_partner():
    score = calculate_health_score(50, 50, 10, 40, 5, 3.0, 10, 120)
    assert score < 60
    assert score == 26


def test_health_score_caps_outliers():
    score = calculate_health_score(500, 1000, 90, 100, 100, 5.0, 90, 0)
    assert score == 100


def test_health_score_floor():
    assert calculate_health_score(0, 0, 0, 0, 0, 0, 0, 200) == 0


def test_slow_closing_does_not_go_negative():
    breakdown = calculate_health_breakdown(0, 0, 0, 0, 0, 0, 0, 365)
    assert breakdown.velocity == 0


@pytest.mark.parametrize("health, growth, csat, coverage, expected", [
    (85, 15, 4.5, 200, RiskLevel.LOW),
    (65, 5, 3.8, 80, RiskLevel.MEDIUM),
    (40, -15, 2.8, 60, RiskLevel.HIGH),
    (35, 20, 4.8, 250, RiskLevel.HIGH),
    (60, 0, 4.0, 150, RiskLevel.MEDIUM),
    (70, 0, 4.0, 150, RiskLevel.LOW),
])
def test_risk_levels(health, growth, csat, coverage, expected):
    assert calculate_risk_level(health, growth, csat, coverage) == expected


def test_low_health_alone_forces_high_risk():
    risk = assess_risk(35, 20, 4.8, 250)
    assert risk.level == RiskLevel.HIGH
    assert risk.factors == ["low_health"]


def test_three_flags_is_high_risk():
    risk = assess_risk(50, -20, 3.0, 150)
    assert risk.level == RiskLevel.HIGH
    assert risk.factors == ["low_health", "declining_revenue", "low_csat"]


def test_thresholds_are_strict():
    risk = assess_risk(55, -10, 3.5, 100)
    assert risk.factors == []
    assert risk.level == RiskLevel.MEDIUM
