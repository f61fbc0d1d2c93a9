"""Tests for CSV and Excel export of quarterly metrics."""

import pytest

from exports import column_units, export_to_csv, export_to_excel, flatten_metrics, metrics_to_dataframe
from metrics_service import PartnerMetricsReport, compute_quarterly_metrics


@pytest.fixture
def metrics(source_data, now):
    return compute_quarterly_metrics("partner-1", "Q4 2024", source_data, 300000, now=now)


def test_flatten_metrics(metrics):
    row = flatten_metrics(metrics)

    assert row["partner_id"] == "partner-1"
    assert row["risk_level"] == "Medium"
    assert row["risk_factors"] == "low_health"
    assert row["revenue_current"] == 250000
    assert row["deal_registration_win_rate"] == 25.0
    assert row["engagement_training_completion_rate"] == 66.7
    assert row["delivery_avg_time_to_go_live"] == 53


def test_metrics_to_dataframe_accepts_reports(metrics):
    report = PartnerMetricsReport(metrics=metrics, source_data_summary={"opportunities": 6})
    df = metrics_to_dataframe([metrics, report])

    assert len(df) == 2
    assert list(df["health_score"]) == [54, 54]


def test_export_to_csv(metrics):
    content = export_to_csv(metrics_to_dataframe([metrics]))

    header = content.decode("utf-8").splitlines()[0]
    assert header.startswith("partner_id,quarter,health_score,risk_level,risk_factors,revenue_current")


def test_export_to_excel(metrics):
    df = metrics_to_dataframe([metrics])
    content = export_to_excel({"Partner Metrics": df})

    assert isinstance(content, bytes)
    assert content[:2] == b"PK"


def test_column_units_follow_metric_fields():
    units = column_units()

    assert units["revenue_current"] == "currency"
    assert units["pipeline_avg_deal_size"] == "currency"
    assert units["revenue_attainment"] == "percent"
    assert units["engagement_marketing_fund_utilization"] == "percent"
    assert "pipeline_count" not in units
    assert "delivery_customer_satisfaction" not in units


def test_every_unit_column_is_exported(metrics):
    columns = set(metrics_to_dataframe([metrics]).columns)
    assert set(column_units()) <= columns
