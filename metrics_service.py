"""
Quarterly Metrics Service
=========================

compute_quarterly_metrics() is the metrics orchestrator: it runs the five
calculators over one SourceData bundle, derives the health score and risk
level, and assembles a QuarterlyMetrics record. It is a pure function of
its arguments plus `now`, which callers fix for reproducible output.

QBRMetricsService is the calling-layer facade: it resolves revenue targets
and MDF budgets from the partner tier directory, pulls source data from an
injected SourceDataCache, and computes metrics for one partner or the
whole ecosystem, plus audit trails and investment recommendations.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Any, List, Optional, Union

from audit_trail import get_metric_audit_trail
from config import DEFAULT_MDF_ALLOCATION, DEFAULT_QUARTER, FALLBACK_REVENUE_TARGET
from exceptions import PartnerNotFoundError, QBRError
from health_scoring import assess_risk, calculate_health_breakdown
from investment import InvestmentRecommendation, calculate_recommended_investments
from metric_calculations import (
    calculate_avg_days_to_close,
    calculate_deal_registration_metrics,
    calculate_delivery_metrics,
    calculate_engagement_metrics,
    calculate_pipeline_metrics,
    calculate_revenue_metrics,
)
from models import QuarterlyMetrics, SourceData
from partner_tiers import PartnerDirectory
from quarters import Quarter, parse_quarter
from source_cache import SourceDataCache

logger = logging.getLogger(__name__)


# ============================================================================
# Orchestrator
# ============================================================================

def compute_quarterly_metrics(
    partner_id: str,
    quarter: Union[str, Quarter],
    source_data: SourceData,
    revenue_target: float,
    mdf_allocation: float = DEFAULT_MDF_ALLOCATION,
    now: Optional[datetime] = None
) -> QuarterlyMetrics:
    """
    Calculate the full quarterly metrics record for a partner.

    Args:
        partner_id: Partner to report on; records of other partners are ignored
        quarter: "Q<1-4> <YYYY>" label (or a parsed Quarter)
        source_data: The nine source collections
        revenue_target: Quarterly revenue target
        mdf_allocation: MDF budget the utilization is measured against
        now: Reference instant for rolling windows; defaults to the current time

    Returns:
        QuarterlyMetrics

    Raises:
        QuarterParseError: If the quarter label is malformed
    """
    quarter = parse_quarter(quarter)
    now = now or datetime.now()

    revenue = calculate_revenue_metrics(
        source_data.opportunities, partner_id, quarter, revenue_target
    )
    pipeline = calculate_pipeline_metrics(
        source_data.opportunities, partner_id, revenue_target, now=now
    )
    deal_registration = calculate_deal_registration_metrics(
        source_data.deal_registrations, partner_id, quarter
    )
    engagement = calculate_engagement_metrics(
        source_data.training_records,
        source_data.portal_activity,
        source_data.certifications,
        source_data.mdf_requests,
        partner_id,
        quarter,
        mdf_allocation=mdf_allocation,
        now=now
    )
    delivery = calculate_delivery_metrics(
        source_data.customer_surveys,
        source_data.support_tickets,
        source_data.implementations,
        partner_id,
        quarter
    )

    avg_days_to_close = calculate_avg_days_to_close(source_data.opportunities, partner_id, now=now)

    health = calculate_health_breakdown(
        revenue.attainment,
        pipeline.coverage,
        pipeline.conversion,
        engagement.training_completion_rate,
        engagement.portal_logins,
        delivery.customer_satisfaction,
        deal_registration.win_rate,
        avg_days_to_close
    )

    risk = assess_risk(
        health.score,
        revenue.growth,
        delivery.customer_satisfaction,
        pipeline.coverage
    )

    logger.debug(
        f"{partner_id} {quarter.label}: health {health.score}, risk {risk.level.value} "
        f"({', '.join(risk.factors) or 'no risk factors'})"
    )

    return QuarterlyMetrics(
        partner_id=partner_id,
        quarter=quarter.label,
        revenue=revenue,
        pipeline=pipeline,
        deal_registration=deal_registration,
        engagement=engagement,
        delivery=delivery,
        health_score=health.score,
        risk_level=risk.level,
        risk_factors=risk.factors
    )


# ============================================================================
# Calling-layer Service
# ============================================================================

@dataclass
class PartnerMetricsReport:
    """Quarterly metrics plus the size of each source collection behind them."""
    metrics: QuarterlyMetrics
    source_data_summary: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data = self.metrics.to_dict()
        data["source_data_summary"] = dict(self.source_data_summary)
        return data


class QBRMetricsService:
    """Computes partner QBR metrics using tier configuration and cached source data."""

    def __init__(
        self,
        directory: PartnerDirectory,
        cache: SourceDataCache,
        strict_tiers: bool = True,
        fallback_revenue_target: float = FALLBACK_REVENUE_TARGET
    ):
        """
        Args:
            directory: Partner → tier directory
            cache: Source data cache owned by the caller
            strict_tiers: Raise PartnerNotFoundError for partners missing from
                the directory; otherwise fall back to fallback_revenue_target
            fallback_revenue_target: Target used for unknown partners when not strict
        """
        self.directory = directory
        self.cache = cache
        self.strict_tiers = strict_tiers
        self.fallback_revenue_target = fallback_revenue_target

    def _budgets_for(self, partner_id: str):
        try:
            return (
                self.directory.revenue_target_for(partner_id),
                self.directory.mdf_allocation_for(partner_id),
            )
        except PartnerNotFoundError:
            if self.strict_tiers:
                raise
            logger.warning(
                f"No tier configured for {partner_id}; using fallback target {self.fallback_revenue_target:,.0f}"
            )
            return self.fallback_revenue_target, DEFAULT_MDF_ALLOCATION

    def get_partner_metrics(
        self,
        partner_id: str,
        quarter: Union[str, Quarter] = DEFAULT_QUARTER,
        now: Optional[datetime] = None
    ) -> PartnerMetricsReport:
        """
        Metrics for one partner.

        Raises:
            PartnerNotFoundError: Partner has no tier (strict mode)
            QuarterParseError: Malformed quarter label
        """
        quarter = parse_quarter(quarter)
        revenue_target, mdf_allocation = self._budgets_for(partner_id)
        source_data = self.cache.get(partner_id)

        metrics = compute_quarterly_metrics(
            partner_id,
            quarter,
            source_data,
            revenue_target,
            mdf_allocation=mdf_allocation,
            now=now
        )
        return PartnerMetricsReport(metrics=metrics, source_data_summary=source_data.summary())

    def get_all_partner_metrics(
        self,
        quarter: Union[str, Quarter] = DEFAULT_QUARTER,
        now: Optional[datetime] = None
    ) -> List[PartnerMetricsReport]:
        """
        Metrics for every partner in the directory.

        A partner that fails is logged and skipped so one bad record set
        cannot abort the batch. A malformed quarter fails the whole call.
        """
        quarter = parse_quarter(quarter)
        now = now or datetime.now()

        reports = []
        for partner_id in self.directory.partner_ids():
            try:
                reports.append(self.get_partner_metrics(partner_id, quarter, now=now))
            except QBRError as e:
                logger.error(f"Failed to calculate metrics for {partner_id}: {e}")

        logger.info(f"Calculated {quarter.label} metrics for {len(reports)} partner(s)")
        return reports

    def get_metric_audit_trail(
        self,
        partner_id: str,
        metric_name: str,
        quarter: Union[str, Quarter] = DEFAULT_QUARTER,
        now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """Audit trail for one metric, computed from the partner's cached source data."""
        return get_metric_audit_trail(
            partner_id, metric_name, quarter, self.cache.get(partner_id), now=now
        )

    def get_investment_recommendations(
        self,
        partner_id: str,
        quarter: Union[str, Quarter] = DEFAULT_QUARTER,
        now: Optional[datetime] = None
    ) -> List[InvestmentRecommendation]:
        """
        Investment recommendations from the partner's quarterly metrics.

        Needs the partner's tier for its investment profile, so unknown
        partners raise PartnerNotFoundError even when tiers are not strict.
        """
        tier = self.directory.tier_for(partner_id)
        report = self.get_partner_metrics(partner_id, quarter, now=now)
        return calculate_recommended_investments(tier, report.metrics)

    def refresh_partner(self, partner_id: str) -> None:
        """Force the next request for this partner to reload its source data."""
        self.cache.invalidate(partner_id)
