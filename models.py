"""
Partner QBR Data Models
=======================

Typed source records consumed by the metrics engine and the typed metric
blocks it produces.

Source records (read-only inputs):
1. Opportunity - a sales deal
2. DealRegistration - a partner-submitted deal claim
3. TrainingRecord - a course assignment/completion
4. PortalActivity - a timestamped portal engagement event
5. Certification - a partner certification with an expiry
6. MDFRequest - a market development fund request
7. CustomerSurvey - a CSAT response (1-5)
8. SupportTicket - a support case
9. Implementation - a customer implementation project

Outputs:
- RevenueMetrics, PipelineMetrics, DealRegistrationMetrics,
  EngagementMetrics, DeliveryMetrics
- QuarterlyMetrics - the assembled record per partner per quarter
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Dict, List, Any
from enum import Enum


# ============================================================================
# Enums and Constants
# ============================================================================

class DealRegStatus(str, Enum):
    """Deal registration lifecycle"""
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"
    WON = "won"
    LOST = "lost"


# Statuses that cleared initial review (not only the literal "approved")
DEAL_REG_APPROVED_STATUSES = (DealRegStatus.APPROVED, DealRegStatus.WON, DealRegStatus.LOST)


class MDFStatus(str, Enum):
    """Market development fund request lifecycle"""
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"


# Statuses whose approved amount counts toward utilization
MDF_FUNDED_STATUSES = (MDFStatus.APPROVED, MDFStatus.COMPLETED)


class RiskLevel(str, Enum):
    """Categorical partner risk rating"""
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


SOURCE_COLLECTIONS = [
    "opportunities",
    "deal_registrations",
    "training_records",
    "portal_activity",
    "certifications",
    "mdf_requests",
    "customer_surveys",
    "support_tickets",
    "implementations",
]


# Field metadata marking monetary and percentage metric fields
CURRENCY = {"unit": "currency"}
PERCENT = {"unit": "percent"}


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


# ============================================================================
# Source Records
# ============================================================================

@dataclass(frozen=True)
class Opportunity:
    """A sales deal. A won opportunity is always closed."""
    id: str
    partner_id: str
    amount: float
    stage: str                          # Free-text CRM stage label
    close_date: datetime
    created_date: datetime
    is_closed: bool
    is_won: bool


@dataclass(frozen=True)
class DealRegistration:
    """A partner-submitted deal claim."""
    id: str
    partner_id: str
    status: DealRegStatus
    submitted_date: datetime
    amount: float


@dataclass(frozen=True)
class TrainingRecord:
    """A course assignment. completed_date is None until the course is done."""
    partner_id: str
    course_name: str
    required: bool
    completed_date: Optional[datetime] = None

    @property
    def is_completed(self) -> bool:
        return self.completed_date is not None


@dataclass(frozen=True)
class PortalActivity:
    partner_id: str
    activity_type: str                  # login, download, training_access, deal_submission
    activity_date: datetime


@dataclass(frozen=True)
class Certification:
    """
    A partner certification.

    The stored is_active flag goes stale; the engine always recomputes
    activity from expiry_date via is_active_at().
    """
    partner_id: str
    name: str
    issue_date: datetime
    expiry_date: datetime
    is_active: bool = True

    def is_active_at(self, now: datetime) -> bool:
        return self.expiry_date > now


@dataclass(frozen=True)
class MDFRequest:
    partner_id: str
    requested_amount: float
    approved_amount: float
    status: MDFStatus
    request_date: datetime


@dataclass(frozen=True)
class CustomerSurvey:
    partner_id: str
    score: float                        # Nominally 1.0-5.0
    survey_date: datetime


@dataclass(frozen=True)
class SupportTicket:
    partner_id: str
    created_date: datetime
    closed_date: Optional[datetime] = None
    is_escalated: bool = False
    first_call_resolution: bool = False


@dataclass(frozen=True)
class Implementation:
    """A customer implementation. go_live_date is None while in progress."""
    partner_id: str
    start_date: datetime
    go_live_date: Optional[datetime] = None


@dataclass
class SourceData:
    """
    The nine source collections for one request.

    Collections are not pre-filtered by partner: every calculator filters by
    partner id itself.
    """
    opportunities: List[Opportunity] = field(default_factory=list)
    deal_registrations: List[DealRegistration] = field(default_factory=list)
    training_records: List[TrainingRecord] = field(default_factory=list)
    portal_activity: List[PortalActivity] = field(default_factory=list)
    certifications: List[Certification] = field(default_factory=list)
    mdf_requests: List[MDFRequest] = field(default_factory=list)
    customer_surveys: List[CustomerSurvey] = field(default_factory=list)
    support_tickets: List[SupportTicket] = field(default_factory=list)
    implementations: List[Implementation] = field(default_factory=list)

    def summary(self) -> Dict[str, int]:
        """Record count per collection."""
        return {name: len(getattr(self, name)) for name in SOURCE_COLLECTIONS}


# ============================================================================
# Metric Blocks
# ============================================================================

@dataclass(frozen=True)
class RevenueMetrics:
    current: int = field(metadata=CURRENCY)
    previous: int = field(metadata=CURRENCY)
    growth: float = field(metadata=PERCENT)      # vs previous quarter, 0 when previous is 0
    ytd: int = field(metadata=CURRENCY)
    target: int = field(metadata=CURRENCY)
    attainment: float = field(metadata=PERCENT)  # of target, 0 when target is 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "current": self.current,
            "previous": self.previous,
            "growth": self.growth,
            "ytd": self.ytd,
            "target": self.target,
            "attainment": self.attainment,
        }


@dataclass(frozen=True)
class PipelineMetrics:
    count: int
    value: int = field(metadata=CURRENCY)
    conversion: float = field(metadata=PERCENT)  # Trailing 12-month win rate
    avg_deal_size: int = field(metadata=CURRENCY)
    coverage: float = field(metadata=PERCENT)    # Open value vs target

    def to_dict(self) -> Dict[str, Any]:
        return {
            "count": self.count,
            "value": self.value,
            "conversion": self.conversion,
            "avg_deal_size": self.avg_deal_size,
            "coverage": self.coverage,
        }


@dataclass(frozen=True)
class DealRegistrationMetrics:
    submitted: int
    approved: int
    won: int
    win_rate: float = field(metadata=PERCENT)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "submitted": self.submitted,
            "approved": self.approved,
            "won": self.won,
            "win_rate": self.win_rate,
        }


@dataclass(frozen=True)
class EngagementMetrics:
    portal_logins: int                  # Rolling 30 days from now
    training_completion_rate: float = field(metadata=PERCENT)
    marketing_fund_utilization: float = field(metadata=PERCENT)
    certifications: int
    last_activity_date: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "portal_logins": self.portal_logins,
            "training_completion_rate": self.training_completion_rate,
            "marketing_fund_utilization": self.marketing_fund_utilization,
            "certifications": self.certifications,
            "last_activity_date": _iso(self.last_activity_date),
        }


@dataclass(frozen=True)
class DeliveryMetrics:
    customer_satisfaction: float
    avg_time_to_go_live: int            # Days
    support_tickets: int
    escalations: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "customer_satisfaction": self.customer_satisfaction,
            "avg_time_to_go_live": self.avg_time_to_go_live,
            "support_tickets": self.support_tickets,
            "escalations": self.escalations,
        }


METRIC_BLOCKS = {
    "revenue": RevenueMetrics,
    "pipeline": PipelineMetrics,
    "deal_registration": DealRegistrationMetrics,
    "engagement": EngagementMetrics,
    "delivery": DeliveryMetrics,
}


@dataclass(frozen=True)
class QuarterlyMetrics:
    """Full metrics record for one partner and one quarter."""
    partner_id: str
    quarter: str
    revenue: RevenueMetrics
    pipeline: PipelineMetrics
    deal_registration: DealRegistrationMetrics
    engagement: EngagementMetrics
    delivery: DeliveryMetrics
    health_score: int
    risk_level: RiskLevel
    risk_factors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "partner_id": self.partner_id,
            "quarter": self.quarter,
            "revenue": self.revenue.to_dict(),
            "pipeline": self.pipeline.to_dict(),
            "deal_registration": self.deal_registration.to_dict(),
            "engagement": self.engagement.to_dict(),
            "delivery": self.delivery.to_dict(),
            "health_score": self.health_score,
            "risk_level": self.risk_level.value,
            "risk_factors": list(self.risk_factors),
        }
