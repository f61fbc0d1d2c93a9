"""
Metric Calculations
===================

Derives quarterly partner metrics from raw source records.

Provides:
- Revenue metrics (current/previous/YTD won revenue, growth, attainment)
- Pipeline metrics (open pipeline, coverage, trailing conversion)
- Deal registration metrics (submitted/approved/won, win rate)
- Engagement metrics (portal logins, training, MDF, certifications)
- Delivery metrics (CSAT, time to go-live, support load)
- Average days to close (auxiliary input to the health score)

Every calculator filters the collections it is given by partner id, never
mutates them, and falls back to a defined value instead of dividing by zero.
Rolling windows ("last 30 days", "last 12 months") are measured from `now`,
which callers inject for reproducible results.
"""

from datetime import datetime, timedelta
from typing import List, Optional, Union

from config import DEFAULT_MDF_ALLOCATION
from models import (
    Certification,
    CustomerSurvey,
    DealRegistration,
    DealRegistrationMetrics,
    DealRegStatus,
    DeliveryMetrics,
    EngagementMetrics,
    Implementation,
    MDFRequest,
    Opportunity,
    PipelineMetrics,
    PortalActivity,
    RevenueMetrics,
    SupportTicket,
    TrainingRecord,
    DEAL_REG_APPROVED_STATUSES,
    MDF_FUNDED_STATUSES,
)
from quarters import Quarter, parse_quarter
from utils import round_currency, round_half_up, round_percent, safe_percentage

PORTAL_LOGIN_WINDOW_DAYS = 30
CLOSE_HISTORY_DAYS = 365
DEFAULT_DAYS_TO_CLOSE = 90.0


# ============================================================================
# Window Helpers
# ============================================================================

def twelve_months_before(now: datetime) -> datetime:
    """Same calendar date one year earlier; Feb 29 rolls forward to Mar 1."""
    try:
        return now.replace(year=now.year - 1)
    except ValueError:
        return now.replace(year=now.year - 1, month=3, day=1)


def _won_revenue(opportunities: List[Opportunity], partner_id: str, start: datetime, end: datetime) -> float:
    return sum(
        opp.amount for opp in opportunities
        if opp.partner_id == partner_id
        and opp.is_won
        and start <= opp.close_date <= end
    )


def closed_opportunities_since(
    opportunities: List[Opportunity],
    partner_id: str,
    since: datetime
) -> List[Opportunity]:
    """Partner's closed opportunities with a close date on or after `since`."""
    return [
        opp for opp in opportunities
        if opp.partner_id == partner_id
        and opp.is_closed
        and opp.close_date >= since
    ]


# ============================================================================
# Revenue
# ============================================================================

def calculate_revenue_metrics(
    opportunities: List[Opportunity],
    partner_id: str,
    quarter: Union[str, Quarter],
    target: float
) -> RevenueMetrics:
    """
    Won revenue for the quarter, the previous quarter and year to date.

    Growth is 0 when the previous quarter had no revenue, and attainment is 0
    when there is no target. Currency rounds to whole units, percentages to
    one decimal.
    """
    quarter = parse_quarter(quarter)
    previous = quarter.previous()

    current_revenue = _won_revenue(opportunities, partner_id, quarter.start, quarter.end)
    previous_revenue = _won_revenue(opportunities, partner_id, previous.start, previous.end)
    ytd_revenue = _won_revenue(opportunities, partner_id, quarter.year_start, quarter.end)

    if previous_revenue > 0:
        growth = (current_revenue - previous_revenue) / previous_revenue * 100
    else:
        growth = 0.0

    attainment = safe_percentage(current_revenue, target)

    return RevenueMetrics(
        current=round_currency(current_revenue),
        previous=round_currency(previous_revenue),
        growth=round_percent(growth),
        ytd=round_currency(ytd_revenue),
        target=round_currency(target),
        attainment=round_percent(attainment)
    )


# ============================================================================
# Pipeline
# ============================================================================

def calculate_pipeline_metrics(
    opportunities: List[Opportunity],
    partner_id: str,
    revenue_target: float,
    now: Optional[datetime] = None
) -> PipelineMetrics:
    """
    Open pipeline as of now (not quarter-scoped) plus the historical
    conversion rate over closed opportunities of the trailing 12 months.
    """
    now = now or datetime.now()

    open_opps = [
        opp for opp in opportunities
        if opp.partner_id == partner_id and not opp.is_closed
    ]
    pipeline_count = len(open_opps)
    pipeline_value = sum(opp.amount for opp in open_opps)

    history = closed_opportunities_since(opportunities, partner_id, twelve_months_before(now))
    won_count = sum(1 for opp in history if opp.is_won)
    conversion_rate = safe_percentage(won_count, len(history))

    avg_deal_size = pipeline_value / pipeline_count if pipeline_count > 0 else 0
    coverage = safe_percentage(pipeline_value, revenue_target)

    return PipelineMetrics(
        count=pipeline_count,
        value=round_currency(pipeline_value),
        conversion=round_percent(conversion_rate),
        avg_deal_size=round_currency(avg_deal_size),
        coverage=round_percent(coverage)
    )


def calculate_avg_days_to_close(
    opportunities: List[Opportunity],
    partner_id: str,
    now: Optional[datetime] = None
) -> float:
    """
    Mean whole days from creation to close over the partner's opportunities
    closed in the last 365 days. Defaults to 90 with no history. Unrounded.
    """
    now = now or datetime.now()
    closed = closed_opportunities_since(
        opportunities, partner_id, now - timedelta(days=CLOSE_HISTORY_DAYS)
    )
    if not closed:
        return DEFAULT_DAYS_TO_CLOSE

    total_days = sum((opp.close_date - opp.created_date).days for opp in closed)
    return total_days / len(closed)


# ============================================================================
# Deal Registration
# ============================================================================

def calculate_deal_registration_metrics(
    deal_registrations: List[DealRegistration],
    partner_id: str,
    quarter: Union[str, Quarter]
) -> DealRegistrationMetrics:
    """
    Registrations submitted in the quarter.

    "Approved" counts every registration that cleared initial review
    (approved, won or lost), not only the literal approved status.
    """
    quarter = parse_quarter(quarter)

    quarter_regs = [
        reg for reg in deal_registrations
        if reg.partner_id == partner_id and quarter.contains(reg.submitted_date)
    ]

    submitted = len(quarter_regs)
    approved = sum(1 for reg in quarter_regs if reg.status in DEAL_REG_APPROVED_STATUSES)
    won = sum(1 for reg in quarter_regs if reg.status == DealRegStatus.WON)

    return DealRegistrationMetrics(
        submitted=submitted,
        approved=approved,
        won=won,
        win_rate=round_percent(safe_percentage(won, submitted))
    )


# ============================================================================
# Engagement
# ============================================================================

def calculate_engagement_metrics(
    training_records: List[TrainingRecord],
    portal_activity: List[PortalActivity],
    certifications: List[Certification],
    mdf_requests: List[MDFRequest],
    partner_id: str,
    quarter: Union[str, Quarter],
    mdf_allocation: float = DEFAULT_MDF_ALLOCATION,
    now: Optional[datetime] = None
) -> EngagementMetrics:
    """
    Engagement signals.

    Portal logins, certifications and last activity are recency signals
    measured from `now`; only MDF utilization is scoped to the quarter.
    A partner with no required training counts as fully compliant (100%).
    """
    quarter = parse_quarter(quarter)
    now = now or datetime.now()

    partner_activity = [a for a in portal_activity if a.partner_id == partner_id]
    login_cutoff = now - timedelta(days=PORTAL_LOGIN_WINDOW_DAYS)
    portal_logins = sum(1 for a in partner_activity if a.activity_date >= login_cutoff)

    required = [t for t in training_records if t.partner_id == partner_id and t.required]
    completed_required = sum(1 for t in required if t.is_completed)
    training_completion_rate = safe_percentage(completed_required, len(required), default=100.0)

    active_certs = sum(
        1 for cert in certifications
        if cert.partner_id == partner_id and cert.is_active_at(now)
    )

    mdf_approved = sum(
        req.approved_amount for req in mdf_requests
        if req.partner_id == partner_id
        and quarter.contains(req.request_date)
        and req.status in MDF_FUNDED_STATUSES
    )
    mdf_utilization = safe_percentage(mdf_approved, mdf_allocation)

    if partner_activity:
        last_activity = max(a.activity_date for a in partner_activity)
    else:
        last_activity = now

    return EngagementMetrics(
        portal_logins=portal_logins,
        training_completion_rate=round_percent(training_completion_rate),
        marketing_fund_utilization=round_percent(mdf_utilization),
        certifications=active_certs,
        last_activity_date=last_activity
    )


# ============================================================================
# Delivery
# ============================================================================

def calculate_delivery_metrics(
    customer_surveys: List[CustomerSurvey],
    support_tickets: List[SupportTicket],
    implementations: List[Implementation],
    partner_id: str,
    quarter: Union[str, Quarter]
) -> DeliveryMetrics:
    """
    CSAT, time to go-live and support load for the quarter.

    Only implementations that went live inside the quarter count toward
    time to go-live; in-progress ones are ignored.
    """
    quarter = parse_quarter(quarter)

    scores = [
        s.score for s in customer_surveys
        if s.partner_id == partner_id and quarter.contains(s.survey_date)
    ]
    satisfaction = sum(scores) / len(scores) if scores else 0.0

    go_live_days = [
        (impl.go_live_date - impl.start_date).days for impl in implementations
        if impl.partner_id == partner_id
        and impl.go_live_date is not None
        and quarter.contains(impl.go_live_date)
    ]
    avg_time_to_go_live = sum(go_live_days) / len(go_live_days) if go_live_days else 0

    quarter_tickets = [
        t for t in support_tickets
        if t.partner_id == partner_id and quarter.contains(t.created_date)
    ]

    return DeliveryMetrics(
        customer_satisfaction=round_half_up(satisfaction, 1),
        avg_time_to_go_live=int(round_half_up(avg_time_to_go_live)),
        support_tickets=len(quarter_tickets),
        escalations=sum(1 for t in quarter_tickets if t.is_escalated)
    )
