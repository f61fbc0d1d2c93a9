"""
Data Ingestion - Source Tables to SourceData
============================================

This module handles:
1. Validating that each source table has the columns its record type needs
2. Converting DataFrame rows into typed source records
3. Loading a directory of CSV exports (one file per collection)
4. Building per-partner loaders for the SourceDataCache
5. Reading the partner_id,tier directory file

Column names match the record field names (e.g. opportunities.csv has
id, partner_id, amount, stage, close_date, created_date, is_closed, is_won).
Nullable date columns (completed_date, closed_date, go_live_date) may be blank.
"""

import logging
from dataclasses import MISSING, fields
from pathlib import Path
from typing import Any, Callable, Dict, List, Union

import pandas as pd

from exceptions import DataIngestionError
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
    SOURCE_COLLECTIONS,
)

logger = logging.getLogger(__name__)


# ============================================================================
# Schema
# ============================================================================

RECORD_TYPES = {
    "opportunities": Opportunity,
    "deal_registrations": DealRegistration,
    "training_records": TrainingRecord,
    "portal_activity": PortalActivity,
    "certifications": Certification,
    "mdf_requests": MDFRequest,
    "customer_surveys": CustomerSurvey,
    "support_tickets": SupportTicket,
    "implementations": Implementation,
}

DATE_COLUMNS = {
    "close_date", "created_date", "submitted_date", "activity_date", "issue_date",
    "expiry_date", "request_date", "survey_date", "start_date",
}
NULLABLE_DATE_COLUMNS = {"completed_date", "closed_date", "go_live_date"}
NUMERIC_COLUMNS = {"amount", "requested_amount", "approved_amount", "score"}
BOOL_COLUMNS = {"is_closed", "is_won", "required", "is_active", "is_escalated", "first_call_resolution"}
ENUM_COLUMNS = {
    ("deal_registrations", "status"): DealRegStatus,
    ("mdf_requests", "status"): MDFStatus,
}

_TRUE_VALUES = {"true", "1", "yes", "y", "t"}
_FALSE_VALUES = {"false", "0", "no", "n", "f", ""}


def required_columns(collection: str) -> List[str]:
    """Columns a table must have; columns with dataclass defaults are optional."""
    record_type = RECORD_TYPES[collection]
    return [
        f.name for f in fields(record_type)
        if f.default is MISSING and f.default_factory is MISSING
    ]


def all_columns(collection: str) -> List[str]:
    return [f.name for f in fields(RECORD_TYPES[collection])]


# ============================================================================
# Value Conversion
# ============================================================================

def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    return bool(pd.isna(value))


def _to_datetime(value: Any):
    timestamp = pd.Timestamp(value)
    if timestamp.tzinfo is not None:
        timestamp = timestamp.tz_convert(None)  # naive UTC
    return timestamp.to_pydatetime()


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ValueError(f"not a boolean: {value!r}")


def _convert(collection: str, column: str, value: Any):
    if column in NULLABLE_DATE_COLUMNS:
        return None if _is_blank(value) else _to_datetime(value)

    if _is_blank(value):
        if column in BOOL_COLUMNS:
            return False
        raise ValueError("value is required")

    if column in DATE_COLUMNS:
        return _to_datetime(value)
    if column in NUMERIC_COLUMNS:
        return float(value)
    if column in BOOL_COLUMNS:
        return _to_bool(value)
    enum_type = ENUM_COLUMNS.get((collection, column))
    if enum_type is not None:
        return enum_type(str(value).strip().lower())
    return str(value).strip()


# ============================================================================
# Loading
# ============================================================================

def records_from_frame(collection: str, df: pd.DataFrame) -> List[Any]:
    """
    Convert a DataFrame into typed records for one collection.

    Raises:
        DataIngestionError: Unknown collection, missing column, or bad value
    """
    if collection not in RECORD_TYPES:
        raise DataIngestionError(f"Unknown source collection: {collection}", collection=collection)

    missing = [col for col in required_columns(collection) if col not in df.columns]
    if missing:
        raise DataIngestionError(
            f"{collection} is missing required column(s): {', '.join(missing)}",
            collection=collection,
            column=missing[0]
        )

    record_type = RECORD_TYPES[collection]
    columns = [col for col in all_columns(collection) if col in df.columns]

    records = []
    for row_number, (_, row) in enumerate(df.iterrows(), start=1):
        values = {}
        for column in columns:
            try:
                values[column] = _convert(collection, column, row[column])
            except (ValueError, TypeError) as e:
                raise DataIngestionError(
                    f"{collection} row {row_number}, column {column}: {e}",
                    collection=collection,
                    row_number=row_number,
                    column=column
                )
        records.append(record_type(**values))

    logger.debug(f"Loaded {len(records)} {collection} records")
    return records


def source_data_from_frames(frames: Dict[str, pd.DataFrame]) -> SourceData:
    """Build a SourceData bundle; collections without a frame are empty."""
    unknown = set(frames) - set(SOURCE_COLLECTIONS)
    if unknown:
        raise DataIngestionError(
            f"Unknown source collection(s): {', '.join(sorted(unknown))}",
            collection=sorted(unknown)[0]
        )
    collections = {
        name: records_from_frame(name, df) for name, df in frames.items()
    }
    return SourceData(**collections)


def load_source_data_from_csv(directory: Union[str, Path]) -> SourceData:
    """
    Load <collection>.csv files from a directory.

    Missing files are treated as empty collections.
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise DataIngestionError(f"Source data directory not found: {directory}")

    frames = {}
    for name in SOURCE_COLLECTIONS:
        path = directory / f"{name}.csv"
        if path.exists():
            frames[name] = pd.read_csv(path, dtype=str, keep_default_na=False)

    source_data = source_data_from_frames(frames)
    logger.info(f"Loaded source data from {directory}: {source_data.summary()}")
    return source_data


def filter_source_data(source_data: SourceData, partner_id: str) -> SourceData:
    """Copy of the bundle restricted to one partner's records."""
    return SourceData(**{
        name: [r for r in getattr(source_data, name) if r.partner_id == partner_id]
        for name in SOURCE_COLLECTIONS
    })


def make_csv_loader(directory: Union[str, Path]) -> Callable[[str], SourceData]:
    """
    Loader for SourceDataCache backed by a CSV export directory.

    Every call re-reads the directory, so SourceDataCache.invalidate() and
    clear() pick up rewritten files. Memoization belongs to the cache.
    """
    def loader(partner_id: str) -> SourceData:
        return filter_source_data(load_source_data_from_csv(directory), partner_id)

    return loader


def load_partner_tiers_from_csv(path: Union[str, Path]) -> Dict[str, str]:
    """
    Read a partner_id,tier CSV into {partner_id: tier_name}.

    Raises:
        DataIngestionError: Missing file, missing column or blank value
    """
    path = Path(path)
    if not path.is_file():
        raise DataIngestionError(f"Partner tier file not found: {path}")

    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    for column in ("partner_id", "tier"):
        if column not in df.columns:
            raise DataIngestionError(f"{path.name} is missing required column: {column}", column=column)

    partner_tiers = {}
    for row_number, (_, row) in enumerate(df.iterrows(), start=1):
        partner_id, tier = row["partner_id"].strip(), row["tier"].strip()
        if not partner_id or not tier:
            raise DataIngestionError(
                f"{path.name} row {row_number}: partner_id and tier are required",
                row_number=row_number
            )
        partner_tiers[partner_id] = tier

    logger.info(f"Loaded tiers for {len(partner_tiers)} partner(s) from {path}")
    return partner_tiers
