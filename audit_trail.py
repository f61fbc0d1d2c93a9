"""
Metric Audit Trail
==================

Explains how a reported metric was calculated and which source records fed
it, for the dashboard's "how was this calculated?" drill-down.

Each entry returns:
- metric: the requested metric name
- calculation: human-readable formula
- source_data: counts (and where useful, names) of the contributing records
- components: weight labels (health_score only)
"""

from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional, Union

from health_scoring import HEALTH_WEIGHTS
from metric_calculations import (
    PORTAL_LOGIN_WINDOW_DAYS,
    closed_opportunities_since,
    twelve_months_before,
)
from models import (
    DealRegStatus,
    SourceData,
    DEAL_REG_APPROVED_STATUSES,
    MDF_FUNDED_STATUSES,
)
from quarters import Quarter, parse_quarter
from utils import format_currency

UNAVAILABLE = "Metric calculation details not available"


def _revenue_growth(data: SourceData, partner_id: str, quarter: Quarter, now: datetime) -> Dict[str, Any]:
    previous = quarter.previous()
    won = [o for o in data.opportunities if o.partner_id == partner_id and o.is_won]
    current_deals = [o for o in won if quarter.contains(o.close_date)]
    previous_deals = [o for o in won if previous.contains(o.close_date)]
    return {
        "calculation": "Revenue Growth = ((Current Quarter - Previous Quarter) / Previous Quarter) × 100",
        "source_data": {
            "current_quarter_deals": len(current_deals),
            "previous_quarter_deals": len(previous_deals),
            "current_quarter_revenue": format_currency(sum(o.amount for o in current_deals)),
            "previous_quarter_revenue": format_currency(sum(o.amount for o in previous_deals)),
        },
    }


def _training_completion(data: SourceData, partner_id: str, quarter: Quarter, now: datetime) -> Dict[str, Any]:
    required = [t for t in data.training_records if t.partner_id == partner_id and t.required]
    return {
        "calculation": "Training Completion = (Completed Required Courses / Total Required Courses) × 100",
        "source_data": {
            "total_required": len(required),
            "completed": sum(1 for t in required if t.is_completed),
            "courses": [
                {
                    "name": t.course_name,
                    "completed": t.is_completed,
                    "completed_date": t.completed_date.isoformat() if t.completed_date else None,
                }
                for t in required
            ],
        },
    }


def _health_score(data: SourceData, partner_id: str, quarter: Quarter, now: datetime) -> Dict[str, Any]:
    opps = [o for o in data.opportunities if o.partner_id == partner_id]
    labels = {name: f"{weight * 100:.0f}% weight" for name, weight in HEALTH_WEIGHTS.items()}
    return {
        "calculation": (
            "Health Score = (Revenue×40% + Pipeline×30% + Engagement×15% + CSAT×10% + Velocity×5%)"
        ),
        "components": labels,
        "source_data": {
            "revenue_data": f"{sum(1 for o in opps if o.is_won)} won deals",
            "pipeline_data": f"{sum(1 for o in opps if not o.is_closed)} open deals",
            "engagement_data": (
                f"{sum(1 for t in data.training_records if t.partner_id == partner_id)} training records"
            ),
            "csat_data": (
                f"{sum(1 for s in data.customer_surveys if s.partner_id == partner_id)} survey responses"
            ),
            "velocity_data": f"{sum(1 for o in opps if o.is_closed)} closed deals",
        },
    }


def _pipeline_conversion(data: SourceData, partner_id: str, quarter: Quarter, now: datetime) -> Dict[str, Any]:
    history = closed_opportunities_since(data.opportunities, partner_id, twelve_months_before(now))
    return {
        "calculation": "Pipeline Conversion = (Won Deals / Closed Deals, trailing 12 months) × 100",
        "source_data": {
            "closed_deals": len(history),
            "won_deals": sum(1 for o in history if o.is_won),
        },
    }


def _deal_win_rate(data: SourceData, partner_id: str, quarter: Quarter, now: datetime) -> Dict[str, Any]:
    regs = [
        r for r in data.deal_registrations
        if r.partner_id == partner_id and quarter.contains(r.submitted_date)
    ]
    by_status = {status.value: sum(1 for r in regs if r.status == status) for status in DealRegStatus}
    return {
        "calculation": "Deal Win Rate = (Won Registrations / Submitted Registrations) × 100",
        "source_data": {
            "submitted": len(regs),
            "approved": sum(1 for r in regs if r.status in DEAL_REG_APPROVED_STATUSES),
            "won": by_status[DealRegStatus.WON.value],
            "by_status": by_status,
        },
    }


def _customer_satisfaction(data: SourceData, partner_id: str, quarter: Quarter, now: datetime) -> Dict[str, Any]:
    scores = [
        s.score for s in data.customer_surveys
        if s.partner_id == partner_id and quarter.contains(s.survey_date)
    ]
    return {
        "calculation": "Customer Satisfaction = Average survey score (1-5) for the quarter",
        "source_data": {
            "survey_responses": len(scores),
            "lowest_score": min(scores) if scores else None,
            "highest_score": max(scores) if scores else None,
        },
    }


def _portal_logins(data: SourceData, partner_id: str, quarter: Quarter, now: datetime) -> Dict[str, Any]:
    cutoff = now - timedelta(days=PORTAL_LOGIN_WINDOW_DAYS)
    recent = [
        a for a in data.portal_activity
        if a.partner_id == partner_id and a.activity_date >= cutoff
    ]
    by_type: Dict[str, int] = {}
    for activity in recent:
        by_type[activity.activity_type] = by_type.get(activity.activity_type, 0) + 1
    return {
        "calculation": f"Portal Logins = Portal activity events in the last {PORTAL_LOGIN_WINDOW_DAYS} days",
        "source_data": {
            "activity_events": len(recent),
            "by_type": dict(sorted(by_type.items())),
        },
    }


def _mdf_utilization(data: SourceData, partner_id: str, quarter: Quarter, now: datetime) -> Dict[str, Any]:
    requests = [
        r for r in data.mdf_requests
        if r.partner_id == partner_id and quarter.contains(r.request_date)
    ]
    funded = [r for r in requests if r.status in MDF_FUNDED_STATUSES]
    return {
        "calculation": "MDF Utilization = (Approved MDF for the quarter / MDF Allocation) × 100",
        "source_data": {
            "requests": len(requests),
            "funded_requests": len(funded),
            "approved_amount": format_currency(sum(r.approved_amount for r in funded)),
        },
    }


def _active_certifications(data: SourceData, partner_id: str, quarter: Quarter, now: datetime) -> Dict[str, Any]:
    certs = [c for c in data.certifications if c.partner_id == partner_id]
    return {
        "calculation": "Active Certifications = Certifications whose expiry date is in the future",
        "source_data": {
            "active": sorted(c.name for c in certs if c.is_active_at(now)),
            "expired": sorted(c.name for c in certs if not c.is_active_at(now)),
        },
    }


AUDIT_BUILDERS: Dict[str, Callable[[SourceData, str, Quarter, datetime], Dict[str, Any]]] = {
    "revenue_growth": _revenue_growth,
    "training_completion": _training_completion,
    "health_score": _health_score,
    "pipeline_conversion": _pipeline_conversion,
    "deal_win_rate": _deal_win_rate,
    "customer_satisfaction": _customer_satisfaction,
    "portal_logins": _portal_logins,
    "mdf_utilization": _mdf_utilization,
    "active_certifications": _active_certifications,
}


def get_metric_audit_trail(
    partner_id: str,
    metric_name: str,
    quarter: Union[str, Quarter],
    source_data: SourceData,
    now: Optional[datetime] = None
) -> Dict[str, Any]:
    """
    Describe how metric_name was calculated for a partner and quarter.

    Unknown metric names get a "not available" description with empty
    source data rather than an error.

    Raises:
        QuarterParseError: If the quarter label is malformed
    """
    quarter = parse_quarter(quarter)
    now = now or datetime.now()

    builder = AUDIT_BUILDERS.get(metric_name)
    if builder is None:
        return {"metric": metric_name, "calculation": UNAVAILABLE, "source_data": {}}

    trail = builder(source_data, partner_id, quarter, now)
    return {"metric": metric_name, **trail}
