"""
Partner Health Scoring
======================

Health score (0-100) and risk classification for a partner quarter.

Health score components (each normalized to 0-100 and capped before
weighting, so a single outlier cannot dominate):
- Revenue (40%): attainment, capped at 200%
- Pipeline (30%): coverage capped at 300%, conversion capped at 50%
- Engagement (15%): training completion, portal logins (30+ = full marks)
- Customer Satisfaction (10%): CSAT on a 1-5 scale
- Velocity (5%): deal win rate capped at 40%, days to close

Risk level stacks four threshold flags on top of the health score, with
health-score escape clauses that force a tier regardless of flag count.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List

from models import RiskLevel
from utils import round_half_up

logger = logging.getLogger(__name__)

# Component weights - must sum to 1.0
REVENUE_WEIGHT = 0.40
PIPELINE_WEIGHT = 0.30
ENGAGEMENT_WEIGHT = 0.15
CSAT_WEIGHT = 0.10
VELOCITY_WEIGHT = 0.05

HEALTH_WEIGHTS: Dict[str, float] = {
    "revenue": REVENUE_WEIGHT,
    "pipeline": PIPELINE_WEIGHT,
    "engagement": ENGAGEMENT_WEIGHT,
    "customer_satisfaction": CSAT_WEIGHT,
    "deal_velocity": VELOCITY_WEIGHT,
}

# Normalization caps
MAX_ATTAINMENT = 200
MAX_COVERAGE = 300
MAX_CONVERSION = 50
FULL_ENGAGEMENT_LOGINS = 30
MAX_WIN_RATE = 40
MAX_DAYS_TO_CLOSE = 100
MAX_CSAT = 5

# Risk thresholds
LOW_HEALTH_THRESHOLD = 55
DECLINING_REVENUE_THRESHOLD = -10
LOW_CSAT_THRESHOLD = 3.5
LOW_PIPELINE_THRESHOLD = 100
HIGH_RISK_FLAG_COUNT = 3
HIGH_RISK_HEALTH = 40
MEDIUM_RISK_HEALTH = 70


# ============================================================================
# Data Classes
# ============================================================================

@dataclass(frozen=True)
class HealthScoreBreakdown:
    """Normalized (0-100) component scores and the final health score."""
    revenue: float
    pipeline: float
    engagement: float
    customer_satisfaction: float
    velocity: float
    weighted_total: float  # Before clamping and rounding
    score: int

    def weighted_components(self) -> Dict[str, float]:
        return {
            "revenue": self.revenue * REVENUE_WEIGHT,
            "pipeline": self.pipeline * PIPELINE_WEIGHT,
            "engagement": self.engagement * ENGAGEMENT_WEIGHT,
            "customer_satisfaction": self.customer_satisfaction * CSAT_WEIGHT,
            "deal_velocity": self.velocity * VELOCITY_WEIGHT,
        }


@dataclass(frozen=True)
class RiskAssessment:
    level: RiskLevel
    factors: List[str] = field(default_factory=list)


# ============================================================================
# Health Score
# ============================================================================

def calculate_health_breakdown(
    revenue_attainment: float,
    pipeline_coverage: float,
    pipeline_conversion: float,
    training_completion_rate: float,
    portal_logins: int,
    customer_satisfaction: float,
    deal_win_rate: float,
    avg_days_to_close: float
) -> HealthScoreBreakdown:
    """Compute every health component and the clamped, rounded total."""
    revenue = min(revenue_attainment, MAX_ATTAINMENT) / 2
    pipeline = (
        min(pipeline_coverage, MAX_COVERAGE) / 3
        + min(pipeline_conversion, MAX_CONVERSION) * 2
    ) / 2
    engagement = (
        training_completion_rate
        + min(portal_logins / FULL_ENGAGEMENT_LOGINS * 100, 100)
    ) / 2
    csat = (customer_satisfaction / MAX_CSAT) * 100
    velocity = (
        min(deal_win_rate, MAX_WIN_RATE) * 2.5
        + max(0, MAX_DAYS_TO_CLOSE - avg_days_to_close)
    ) / 2

    weighted_total = (
        revenue * REVENUE_WEIGHT
        + pipeline * PIPELINE_WEIGHT
        + engagement * ENGAGEMENT_WEIGHT
        + csat * CSAT_WEIGHT
        + velocity * VELOCITY_WEIGHT
    )
    score = int(round_half_up(min(100, max(0, weighted_total))))

    logger.debug(
        f"Health score components - revenue: {revenue:.1f} ({revenue * REVENUE_WEIGHT:.1f}), "
        f"pipeline: {pipeline:.1f} ({pipeline * PIPELINE_WEIGHT:.1f}), "
        f"engagement: {engagement:.1f} ({engagement * ENGAGEMENT_WEIGHT:.1f}), "
        f"csat: {csat:.1f} ({csat * CSAT_WEIGHT:.1f}), "
        f"velocity: {velocity:.1f} ({velocity * VELOCITY_WEIGHT:.1f}) = {weighted_total:.1f}"
    )

    return HealthScoreBreakdown(
        revenue=revenue,
        pipeline=pipeline,
        engagement=engagement,
        customer_satisfaction=csat,
        velocity=velocity,
        weighted_total=weighted_total,
        score=score
    )


def calculate_health_score(
    revenue_attainment: float,
    pipeline_coverage: float,
    pipeline_conversion: float,
    training_completion_rate: float,
    portal_logins: int,
    customer_satisfaction: float,
    deal_win_rate: float,
    avg_days_to_close: float
) -> int:
    """
    Calculate partner health score (0-100).

    Returns:
        Integer score, clamped to [0, 100]
    """
    return calculate_health_breakdown(
        revenue_attainment,
        pipeline_coverage,
        pipeline_conversion,
        training_completion_rate,
        portal_logins,
        customer_satisfaction,
        deal_win_rate,
        avg_days_to_close
    ).score


# ============================================================================
# Risk Classification
# ============================================================================

def assess_risk(
    health_score: float,
    revenue_growth: float,
    customer_satisfaction: float,
    pipeline_coverage: float
) -> RiskAssessment:
    """
    Classify risk and report which flags were raised.

    High: 3+ flags or health below 40.
    Medium: any flag or health below 70.
    Low: otherwise.
    """
    factors = []
    if health_score < LOW_HEALTH_THRESHOLD:
        factors.append("low_health")
    if revenue_growth < DECLINING_REVENUE_THRESHOLD:
        factors.append("declining_revenue")
    if customer_satisfaction < LOW_CSAT_THRESHOLD:
        factors.append("low_csat")
    if pipeline_coverage < LOW_PIPELINE_THRESHOLD:
        factors.append("low_pipeline")

    if len(factors) >= HIGH_RISK_FLAG_COUNT or health_score < HIGH_RISK_HEALTH:
        level = RiskLevel.HIGH
    elif factors or health_score < MEDIUM_RISK_HEALTH:
        level = RiskLevel.MEDIUM
    else:
        level = RiskLevel.LOW

    return RiskAssessment(level=level, factors=factors)


def calculate_risk_level(
    health_score: float,
    revenue_growth: float,
    customer_satisfaction: float,
    pipeline_coverage: float
) -> RiskLevel:
    """Risk level only; see assess_risk for the contributing flags."""
    return assess_risk(health_score, revenue_growth, customer_satisfaction, pipeline_coverage).level
