"""Shared fixtures: one partner's source records around Q4 2024."""

from datetime import datetime

import pytest

from models import (
    Certification,
    CustomerSurvey,
    DealRegistration,
    DealRegStatus,
    Implementation,
    MDFRequest,
    MDFStatus,
    Opportunity,
    PortalActivity,
    SourceData,
    SupportTicket,
    TrainingRecord,
)

# Fixed reference instant for every rolling window in the tests
NOW = datetime(2024, 12, 15, 12, 0, 0)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def opportunities():
    """Two won Q4 deals (250k), one won Q3 deal (80k), two open deals (320k)."""
    return [
        Opportunity("opp-1", "partner-1", 100000, "Closed Won",
                    datetime(2024, 10, 15), datetime(2024, 9, 1), True, True),
        Opportunity("opp-2", "partner-1", 150000, "Closed Won",
                    datetime(2024, 11, 20), datetime(2024, 10, 1), True, True),
        Opportunity("opp-3", "partner-1", 80000, "Closed Won",
                    datetime(2024, 7, 15), datetime(2024, 6, 1), True, True),
        Opportunity("opp-4", "partner-1", 200000, "Proposal",
                    datetime(2024, 12, 30), datetime(2024, 11, 1), False, False),
        Opportunity("opp-5", "partner-1", 120000, "Negotiation",
                    datetime(2025, 1, 15), datetime(2024, 10, 15), False, False),
        # Another partner's deals must never leak into partner-1's figures
        Opportunity("opp-9", "partner-2", 999999, "Closed Won",
                    datetime(2024, 11, 1), datetime(2024, 10, 1), True, True),
    ]


@pytest.fixture
def deal_registrations():
    return [
        DealRegistration("reg-1", "partner-1", DealRegStatus.SUBMITTED, datetime(2024, 10, 1), 50000),
        DealRegistration("reg-2", "partner-1", DealRegStatus.WON, datetime(2024, 10, 15), 75000),
        DealRegistration("reg-3", "partner-1", DealRegStatus.APPROVED, datetime(2024, 11, 1), 60000),
        DealRegistration("reg-4", "partner-1", DealRegStatus.REJECTED, datetime(2024, 11, 15), 40000),
        # Previous quarter - excluded
        DealRegistration("reg-5", "partner-1", DealRegStatus.WON, datetime(2024, 8, 15), 30000),
    ]


@pytest.fixture
def training_records():
    """Three required courses (two completed) and one optional course."""
    return [
        TrainingRecord("partner-1", "Product Fundamentals", True, datetime(2024, 9, 1)),
        TrainingRecord("partner-1", "Sales Methodology", True, datetime(2024, 9, 15)),
        TrainingRecord("partner-1", "Technical Deep Dive", True, None),
        TrainingRecord("partner-1", "Advanced Configuration", False, datetime(2024, 10, 1)),
    ]


@pytest.fixture
def portal_activity():
    return [
        PortalActivity("partner-1", "login", datetime(2024, 12, 14, 9, 0)),
        PortalActivity("partner-1", "download", datetime(2024, 12, 1, 10, 30)),
        PortalActivity("partner-1", "login", datetime(2024, 11, 20, 14, 0)),
        PortalActivity("partner-1", "login", datetime(2024, 10, 1, 8, 0)),
    ]


@pytest.fixture
def certifications():
    return [
        Certification("partner-1", "Product Specialist",
                      datetime(2023, 6, 1), datetime(2025, 6, 1), True),
        # Stored flag is stale: expired last month
        Certification("partner-1", "Technical Expert",
                      datetime(2022, 11, 1), datetime(2024, 11, 1), True),
    ]


@pytest.fixture
def mdf_requests():
    return [
        MDFRequest("partner-1", 12000, 10000, MDFStatus.APPROVED, datetime(2024, 10, 10)),
        MDFRequest("partner-1", 6000, 5000, MDFStatus.COMPLETED, datetime(2024, 11, 5)),
        MDFRequest("partner-1", 9000, 0, MDFStatus.REJECTED, datetime(2024, 11, 12)),
        MDFRequest("partner-1", 7000, 0, MDFStatus.SUBMITTED, datetime(2024, 12, 2)),
        # Previous quarter - excluded
        MDFRequest("partner-1", 9000, 8000, MDFStatus.APPROVED, datetime(2024, 8, 20)),
    ]


@pytest.fixture
def customer_surveys():
    return [
        CustomerSurvey("partner-1", 4.5, datetime(2024, 10, 20)),
        CustomerSurvey("partner-1", 3.5, datetime(2024, 12, 5)),
        CustomerSurvey("partner-1", 2.0, datetime(2024, 9, 10)),
    ]


@pytest.fixture
def support_tickets():
    return [
        SupportTicket("partner-1", datetime(2024, 10, 3), datetime(2024, 10, 4), False, True),
        SupportTicket("partner-1", datetime(2024, 11, 8), datetime(2024, 11, 12), True, False),
        SupportTicket("partner-1", datetime(2024, 12, 10), None, False, False),
        SupportTicket("partner-1", datetime(2024, 9, 28), datetime(2024, 9, 30), True, False),
    ]


@pytest.fixture
def implementations():
    return [
        Implementation("partner-1", datetime(2024, 9, 1), datetime(2024, 10, 31)),   # 60 days
        Implementation("partner-1", datetime(2024, 10, 1), datetime(2024, 11, 15)),  # 45 days
        Implementation("partner-1", datetime(2024, 11, 20), None),                   # in progress
        Implementation("partner-1", datetime(2024, 6, 1), datetime(2024, 8, 1)),     # Q3 go-live
    ]


@pytest.fixture
def source_data(
    opportunities,
    deal_registrations,
    training_records,
    portal_activity,
    certifications,
    mdf_requests,
    customer_surveys,
    support_tickets,
    implementations,
):
    return SourceData(
        opportunities=opportunities,
        deal_registrations=deal_registrations,
        training_records=training_records,
        portal_activity=portal_activity,
        certifications=certifications,
        mdf_requests=mdf_requests,
        customer_surveys=customer_surveys,
        support_tickets=support_tickets,
        implementations=implementations,
    )
