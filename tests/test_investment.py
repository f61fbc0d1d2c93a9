"""Tests for partner investment recommendations."""

from datetime import datetime

import pytest

from investment import (
    INVESTMENT_TEMPLATES,
    InvestmentPriority,
    assign_priority,
    calculate_recommended_investments,
)
from models import (
    DealRegistrationMetrics,
    DeliveryMetrics,
    EngagementMetrics,
    PipelineMetrics,
    QuarterlyMetrics,
    RevenueMetrics,
    RiskLevel,
)
from partner_tiers import DEFAULT_TIERS, PartnerTier

STRATEGIC = DEFAULT_TIERS["Strategic"]
REGISTERED = DEFAULT_TIERS["Registered"]


def make_metrics(
    training=95.0,
    win_rate=40.0,
    conversion=40.0,
    coverage=200.0,
    avg_deal_size=100000,
    go_live=20,
    health=85,
    risk=RiskLevel.LOW,
    current_revenue=200000,
    pipeline_count=4,
    pipeline_value=400000,
):
    """Quarterly metrics that trigger no template unless overridden."""
    return QuarterlyMetrics(
        partner_id="p1",
        quarter="Q4 2024",
        revenue=RevenueMetrics(current_revenue, current_revenue, 0.0, current_revenue, 200000, 100.0),
        pipeline=PipelineMetrics(pipeline_count, pipeline_value, conversion, avg_deal_size, coverage),
        deal_registration=DealRegistrationMetrics(10, 8, 4, win_rate),
        engagement=EngagementMetrics(20, training, 50.0, 2, datetime(2024, 12, 1)),
        delivery=DeliveryMetrics(4.5, go_live, 3, 0),
        health_score=health,
        risk_level=risk,
    )


def template(name):
    return next(t for t in INVESTMENT_TEMPLATES if t.name == name)


def test_healthy_partner_gets_no_recommendations():
    assert calculate_recommended_investments(STRATEGIC, make_metrics()) == []


# ============================================================================
# Triggers
# ============================================================================

@pytest.mark.parametrize("name, overrides, expected", [
    ("Enablement Acceleration", {}, False),
    ("Enablement Acceleration", {"training": 84.9}, True),
    ("Enablement Acceleration", {"win_rate": 29.9}, True),
    ("Sales Performance Coaching", {}, False),
    ("Sales Performance Coaching", {"conversion": 34.9}, True),
    ("Sales Performance Coaching", {"coverage": 149.9}, True),
    ("Health Remediation Program", {}, False),
    ("Health Remediation Program", {"health": 74}, True),
    ("Health Remediation Program", {"risk": RiskLevel.HIGH}, True),
    ("Health Remediation Program", {"health": 75, "risk": RiskLevel.MEDIUM}, False),
    ("Technical Enablement", {}, False),
    ("Technical Enablement", {"avg_deal_size": 74999}, True),
    ("Technical Enablement", {"go_live": 31}, True),
    ("Technical Enablement", {"go_live": 30}, False),
])
def test_template_triggers(name, overrides, expected):
    assert template(name).applies(STRATEGIC, make_metrics(**overrides)) is expected


# ============================================================================
# Impact
# ============================================================================

def test_enablement_acceleration():
    [rec] = calculate_recommended_investments(STRATEGIC, make_metrics(training=60, win_rate=20))

    assert rec.name == "Enablement Acceleration"
    # (100000 * 0.25 * 0.30) * (4 * 0.15 * 0.15) * 4
    assert rec.potential_arr == 2700
    assert rec.risk_arr == 12000
    assert rec.investment == 25000
    assert rec.priority == InvestmentPriority.LOW


def test_sales_coaching_scales_with_tier_multiplier():
    [rec] = calculate_recommended_investments(STRATEGIC, make_metrics(conversion=20))

    assert rec.name == "Sales Performance Coaching"
    assert rec.investment == 15000          # 25000 * 0.4 * 1.5
    assert rec.potential_arr == 22500       # 18000 pipeline + 4500 velocity
    assert rec.risk_arr == 6000
    assert rec.expected_roi == pytest.approx(1.5)


def test_sales_coaching_without_conversion_gap_is_dropped():
    # Coverage alone triggers the template, but with no conversion gap there is no upside
    assert calculate_recommended_investments(STRATEGIC, make_metrics(coverage=120)) == []


def test_health_remediation_urgent():
    [rec] = calculate_recommended_investments(
        STRATEGIC, make_metrics(health=50, risk=RiskLevel.HIGH)
    )

    assert rec.investment == 22500          # 25000 * 0.6 * 1.5
    assert rec.potential_arr == 105000      # 300000 * 0.5 * 0.7
    assert rec.risk_arr == 100000
    assert rec.priority == InvestmentPriority.HIGH


def test_health_remediation_standard_urgency():
    [rec] = calculate_recommended_investments(
        STRATEGIC, make_metrics(health=70, risk=RiskLevel.MEDIUM)
    )

    assert rec.investment == 18000          # 25000 * 0.6 * 1.2
    assert rec.potential_arr == 63000
    assert rec.expected_roi == pytest.approx(3.5)
    assert rec.priority == InvestmentPriority.MEDIUM


def test_health_remediation_cheaper_for_registered_tier():
    [rec] = calculate_recommended_investments(
        REGISTERED, make_metrics(health=50, risk=RiskLevel.HIGH)
    )
    assert rec.investment == 7200           # 8000 * 0.6 * 1.5


def test_technical_enablement_deal_size():
    [rec] = calculate_recommended_investments(STRATEGIC, make_metrics(avg_deal_size=50000))

    assert rec.investment == 15000
    assert rec.potential_arr == 30000       # 4 * 50000 * 0.3 * 0.5
    assert rec.risk_arr == 30000
    assert rec.priority == InvestmentPriority.LOW


def test_technical_enablement_slow_delivery():
    [rec] = calculate_recommended_investments(STRATEGIC, make_metrics(go_live=50))

    assert rec.potential_arr == 40000       # 200000 * 0.2 * 1.0
    assert rec.risk_arr == 60000
    assert rec.priority == InvestmentPriority.MEDIUM


# ============================================================================
# Ranking and Filtering
# ============================================================================

def test_recommendations_sorted_by_roi():
    metrics = make_metrics(
        training=60, win_rate=20, conversion=20, health=50, risk=RiskLevel.HIGH, avg_deal_size=50000
    )
    recs = calculate_recommended_investments(STRATEGIC, metrics)

    assert [r.name for r in recs] == [
        "Health Remediation Program",
        "Technical Enablement",
        "Sales Performance Coaching",
        "Enablement Acceleration",
    ]
    assert [r.expected_roi for r in recs] == sorted((r.expected_roi for r in recs), reverse=True)


def test_small_upside_is_dropped():
    # Enablement upside: 2500 * 0.06 * 4 = 600
    assert calculate_recommended_investments(STRATEGIC, make_metrics(training=80, win_rate=25)) == []


def test_zero_cost_profile_is_dropped():
    free = PartnerTier("Free", 50000, base_enablement_cost=0)
    assert calculate_recommended_investments(free, make_metrics(training=60, win_rate=20)) == []


@pytest.mark.parametrize("roi, risk_arr, investment, expected", [
    (4.01, 20000, 10000, InvestmentPriority.HIGH),
    (4.0, 20000, 10000, InvestmentPriority.MEDIUM),
    (6.0, 10000, 10000, InvestmentPriority.MEDIUM),
    (2.51, 0, 10000, InvestmentPriority.MEDIUM),
    (2.5, 0, 10000, InvestmentPriority.LOW),
])
def test_priority_thresholds(roi, risk_arr, investment, expected):
    assert assign_priority(roi, risk_arr, investment) == expected


def test_recommendation_to_dict_and_description():
    [rec] = calculate_recommended_investments(
        STRATEGIC, make_metrics(health=50, risk=RiskLevel.HIGH)
    )

    assert rec.to_dict()["priority"] == "High"
    assert rec.describe() == (
        "Health Remediation Program: invest $23k for $105k potential ARR (4.7x ROI, High priority)"
    )
