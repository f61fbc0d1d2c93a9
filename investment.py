"""
Partner Investment Recommendations
==================================

Suggests partner investments from a partner's quarterly metrics and tier.

Each investment template has a trigger condition over QuarterlyMetrics and
an impact model that estimates:
- potential_arr: annual recurring revenue the investment could unlock
- risk_arr: revenue at risk if the gap is left alone
- investment: cost, scaled by the tier's investment profile

Recommendations with negligible upside (potential ARR of 1,000 or less) or
no cost are dropped; the rest are ranked by ROI (potential ARR per unit
invested) and capped at four.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List

from models import QuarterlyMetrics, RiskLevel
from partner_tiers import PartnerTier
from utils import format_compact_currency, round_currency

logger = logging.getLogger(__name__)

# Industry return per unit invested, by program type
ROI_BENCHMARKS = {
    "enablement": 4.2,
    "sales_coaching": 3.8,
    "technical_support": 2.9,
    "marketing": 2.4,
    "health_remediation": 5.1,
}

MIN_POTENTIAL_ARR = 1000
MAX_RECOMMENDATIONS = 4
HIGH_PRIORITY_ROI = 4
MEDIUM_PRIORITY_ROI = 2.5


class InvestmentPriority(str, Enum):
    """Recommendation priority."""
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


# ============================================================================
# Data Classes
# ============================================================================

@dataclass(frozen=True)
class InvestmentImpact:
    potential_arr: int
    risk_arr: int
    investment: float


@dataclass(frozen=True)
class InvestmentTemplate:
    name: str
    description: str
    base_cost: float
    duration_months: int
    benchmark_roi: float
    risk_factor: float                  # 0-1
    applies: Callable[[PartnerTier, QuarterlyMetrics], bool]
    impact: Callable[[PartnerTier, QuarterlyMetrics], InvestmentImpact]


@dataclass(frozen=True)
class InvestmentRecommendation:
    name: str
    description: str
    potential_arr: int
    risk_arr: int
    investment: float
    expected_roi: float                 # potential_arr / investment
    priority: InvestmentPriority

    def describe(self) -> str:
        return (
            f"{self.name}: invest {format_compact_currency(self.investment)} for "
            f"{format_compact_currency(self.potential_arr)} potential ARR "
            f"({self.expected_roi:.1f}x ROI, {self.priority.value} priority)"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "potential_arr": self.potential_arr,
            "risk_arr": self.risk_arr,
            "investment": self.investment,
            "expected_roi": self.expected_roi,
            "priority": self.priority.value,
        }


# ============================================================================
# Templates
# ============================================================================

def _enablement_applies(tier: PartnerTier, metrics: QuarterlyMetrics) -> bool:
    return (
        metrics.engagement.training_completion_rate < 85
        or metrics.deal_registration.win_rate < 30
    )


def _enablement_impact(tier: PartnerTier, metrics: QuarterlyMetrics) -> InvestmentImpact:
    training_gap = max(0, 90 - metrics.engagement.training_completion_rate) / 100
    win_rate_gap = max(0, 35 - metrics.deal_registration.win_rate) / 100

    avg_deal_increase = metrics.pipeline.avg_deal_size * 0.25 * training_gap
    deal_volume_increase = metrics.pipeline.count * 0.15 * win_rate_gap
    potential_arr = avg_deal_increase * deal_volume_increase * 4  # Annualized

    # Revenue lost if the partner churns on poor enablement
    risk_arr = metrics.revenue.current * 0.2 * training_gap

    return InvestmentImpact(
        potential_arr=round_currency(potential_arr),
        risk_arr=round_currency(risk_arr),
        investment=tier.base_enablement_cost
    )


def _sales_coaching_applies(tier: PartnerTier, metrics: QuarterlyMetrics) -> bool:
    return metrics.pipeline.conversion < 35 or metrics.pipeline.coverage < 150


def _sales_coaching_impact(tier: PartnerTier, metrics: QuarterlyMetrics) -> InvestmentImpact:
    investment = tier.base_enablement_cost * 0.4 * tier.sales_coaching_multiplier

    conversion_gap = max(0, 35 - metrics.pipeline.conversion) / 100
    pipeline_gap = max(0, 150 - metrics.pipeline.coverage) / 100

    pipeline_impact = metrics.pipeline.value * conversion_gap * 0.3
    velocity_impact = metrics.revenue.current * 0.15 * conversion_gap
    risk_arr = metrics.pipeline.value * 0.1 * max(conversion_gap, pipeline_gap)

    return InvestmentImpact(
        potential_arr=round_currency(pipeline_impact + velocity_impact),
        risk_arr=round_currency(risk_arr),
        investment=round_currency(investment)
    )


def _health_remediation_applies(tier: PartnerTier, metrics: QuarterlyMetrics) -> bool:
    return metrics.health_score < 75 or metrics.risk_level == RiskLevel.HIGH


def _health_remediation_impact(tier: PartnerTier, metrics: QuarterlyMetrics) -> InvestmentImpact:
    urgency_multiplier = 1.5 if metrics.health_score < 60 else 1.2
    investment = tier.base_enablement_cost * 0.6 * urgency_multiplier

    churn_probability = (100 - metrics.health_score) / 100
    churn_cost = metrics.revenue.current * 1.5     # Cost to replace the partner
    potential_arr = churn_cost * churn_probability * 0.7  # 70% remediation success

    return InvestmentImpact(
        potential_arr=round_currency(potential_arr),
        risk_arr=round_currency(metrics.revenue.current * churn_probability),
        investment=round_currency(investment)
    )


def _technical_applies(tier: PartnerTier, metrics: QuarterlyMetrics) -> bool:
    return metrics.pipeline.avg_deal_size < 75000 or metrics.delivery.avg_time_to_go_live > 30


def _technical_impact(tier: PartnerTier, metrics: QuarterlyMetrics) -> InvestmentImpact:
    deal_size_gap = max(0, 100000 - metrics.pipeline.avg_deal_size) / 100000
    delivery_gap = max(0, metrics.delivery.avg_time_to_go_live - 20) / 30

    deal_size_increase = (
        metrics.pipeline.count * metrics.pipeline.avg_deal_size * 0.3 * deal_size_gap
    )
    velocity_increase = metrics.revenue.current * 0.2 * delivery_gap
    risk_arr = metrics.pipeline.value * 0.15 * max(deal_size_gap, delivery_gap)

    return InvestmentImpact(
        potential_arr=round_currency(deal_size_increase + velocity_increase),
        risk_arr=round_currency(risk_arr),
        investment=tier.technical_support_cost
    )


INVESTMENT_TEMPLATES: List[InvestmentTemplate] = [
    InvestmentTemplate(
        name="Enablement Acceleration",
        description="Comprehensive training program to improve deal complexity and win rates",
        base_cost=15000,
        duration_months=6,
        benchmark_roi=ROI_BENCHMARKS["enablement"],
        risk_factor=0.15,
        applies=_enablement_applies,
        impact=_enablement_impact
    ),
    InvestmentTemplate(
        name="Sales Performance Coaching",
        description="Dedicated sales coaching to improve pipeline conversion and deal velocity",
        base_cost=8000,
        duration_months=3,
        benchmark_roi=ROI_BENCHMARKS["sales_coaching"],
        risk_factor=0.12,
        applies=_sales_coaching_applies,
        impact=_sales_coaching_impact
    ),
    InvestmentTemplate(
        name="Health Remediation Program",
        description="Intensive support program for at-risk partners to prevent churn",
        base_cost=12000,
        duration_months=4,
        benchmark_roi=ROI_BENCHMARKS["health_remediation"],
        risk_factor=0.25,
        applies=_health_remediation_applies,
        impact=_health_remediation_impact
    ),
    InvestmentTemplate(
        name="Technical Enablement",
        description="Advanced technical training and solution architecture support",
        base_cost=10000,
        duration_months=5,
        benchmark_roi=ROI_BENCHMARKS["technical_support"],
        risk_factor=0.18,
        applies=_technical_applies,
        impact=_technical_impact
    ),
]


# ============================================================================
# Recommendations
# ============================================================================

def assign_priority(roi: float, risk_arr: float, investment: float) -> InvestmentPriority:
    """
    High: ROI above 4 and more revenue at risk than the investment costs.
    Medium: ROI above 2.5.
    Low: otherwise.
    """
    if roi > HIGH_PRIORITY_ROI and risk_arr > investment:
        return InvestmentPriority.HIGH
    if roi > MEDIUM_PRIORITY_ROI:
        return InvestmentPriority.MEDIUM
    return InvestmentPriority.LOW


def calculate_recommended_investments(
    tier: PartnerTier,
    metrics: QuarterlyMetrics
) -> List[InvestmentRecommendation]:
    """
    Recommend investments for a partner quarter.

    Args:
        tier: The partner's tier; its investment profile scales costs
        metrics: The partner's quarterly metrics

    Returns:
        Up to MAX_RECOMMENDATIONS recommendations, highest ROI first
    """
    recommendations = []
    for template in INVESTMENT_TEMPLATES:
        if not template.applies(tier, metrics):
            continue

        impact = template.impact(tier, metrics)
        if impact.investment <= 0 or impact.potential_arr <= MIN_POTENTIAL_ARR:
            continue

        roi = impact.potential_arr / impact.investment
        recommendations.append(InvestmentRecommendation(
            name=template.name,
            description=template.description,
            potential_arr=impact.potential_arr,
            risk_arr=impact.risk_arr,
            investment=impact.investment,
            expected_roi=roi,
            priority=assign_priority(roi, impact.risk_arr, impact.investment)
        ))

    recommendations.sort(key=lambda rec: rec.expected_roi, reverse=True)

    logger.debug(
        f"{metrics.partner_id} {metrics.quarter}: {len(recommendations)} investment recommendation(s)"
    )
    return recommendations[:MAX_RECOMMENDATIONS]
