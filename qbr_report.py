"""
Build a partner QBR report from CSV exports.

Usage:
    qbr-report --data-dir exports/ --partners partners.csv --quarter "Q4 2024" \
        --csv-out qbr.csv --excel-out qbr.xlsx
"""

import argparse
import logging
from datetime import datetime
from pathlib import Path

import pandas as pd

from config import DEFAULT_QUARTER, LOG_FILE, LOG_LEVEL
from data_ingestion import load_partner_tiers_from_csv, make_csv_loader
from exceptions import QBRError
from exports import export_to_csv, export_to_excel, metrics_to_dataframe
from investment import calculate_recommended_investments
from metrics_service import QBRMetricsService
from partner_tiers import PartnerDirectory, load_tier_table
from source_cache import SourceDataCache
from utils import format_currency, format_percent, setup_logging

logger = logging.getLogger(__name__)


def _as_of_date(value: str) -> datetime:
    try:
        return datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected YYYY-MM-DD, got {value!r}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Calculate partner QBR metrics from CSV exports.")
    parser.add_argument("--data-dir", required=True, help="Directory of source CSV exports.")
    parser.add_argument("--partners", required=True, help="CSV file with partner_id,tier columns.")
    parser.add_argument("--quarter", default=DEFAULT_QUARTER, help='Quarter label, e.g. "Q4 2024".')
    parser.add_argument(
        "--as-of",
        dest="as_of",
        type=_as_of_date,
        default=None,
        help="Reference date (YYYY-MM-DD) for rolling windows. Defaults to now.",
    )
    parser.add_argument("--tiers", default=None, help="Optional JSON tier table.")
    parser.add_argument(
        "--tiered-mdf",
        dest="tiered_mdf",
        action="store_true",
        default=None,
        help="Use each tier's marketing fund budget as its MDF allocation.",
    )
    parser.add_argument("--csv-out", dest="csv_out", default=None, help="Write metrics CSV here.")
    parser.add_argument("--excel-out", dest="excel_out", default=None, help="Write Excel workbook here.")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(LOG_LEVEL, LOG_FILE)

    try:
        directory = PartnerDirectory(
            load_partner_tiers_from_csv(args.partners),
            load_tier_table(args.tiers, tiered_mdf=args.tiered_mdf),
        )
        service = QBRMetricsService(directory, SourceDataCache(make_csv_loader(args.data_dir)))
        reports = service.get_all_partner_metrics(args.quarter, now=args.as_of)
    except QBRError as e:
        logger.error(f"QBR report failed: {e}")
        return 1

    investment_rows = []
    for report in reports:
        metrics = report.metrics
        print(
            f"{metrics.partner_id} {metrics.quarter}: health {metrics.health_score} "
            f"({metrics.risk_level.value} risk), revenue {format_currency(metrics.revenue.current)} "
            f"({format_percent(metrics.revenue.attainment)} of target)"
        )
        tier = directory.tier_for(metrics.partner_id)
        for rec in calculate_recommended_investments(tier, metrics):
            print(f"  - {rec.describe()}")
            investment_rows.append({"partner_id": metrics.partner_id, **rec.to_dict()})

    df = metrics_to_dataframe(reports)
    if args.csv_out:
        Path(args.csv_out).write_bytes(export_to_csv(df))
        logger.info(f"Wrote {len(df)} row(s) to {args.csv_out}")
    if args.excel_out:
        sheets = {"QBR Metrics": df}
        if investment_rows:
            sheets["Investments"] = pd.DataFrame(investment_rows)
        Path(args.excel_out).write_bytes(export_to_excel(sheets))
        logger.info(f"Wrote workbook to {args.excel_out}")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
