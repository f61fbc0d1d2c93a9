"""
Export functionality for partner QBR metrics.
Flattens QuarterlyMetrics into DataFrames and writes CSV or Excel.
"""

import io
from dataclasses import fields
from typing import Dict, Iterable, Union

import pandas as pd

from metrics_service import PartnerMetricsReport
from models import METRIC_BLOCKS, QuarterlyMetrics

# xlsxwriter number formats per field unit; percentages are already 0-100
UNIT_FORMATS = {
    "currency": {"num_format": "$#,##0", "border": 1},
    "percent": {"num_format": '0.0"%"', "border": 1},
}
HEADER_FORMAT = {
    "bold": True,
    "text_wrap": True,
    "valign": "top",
    "fg_color": "#4472C4",
    "font_color": "white",
    "border": 1,
}
MAX_COLUMN_WIDTH = 50


def column_units() -> Dict[str, str]:
    """Flattened column name -> unit, read from the metric block field metadata."""
    units = {}
    for block, block_type in METRIC_BLOCKS.items():
        for f in fields(block_type):
            unit = f.metadata.get("unit")
            if unit:
                units[f"{block}_{f.name}"] = unit
    return units


def flatten_metrics(metrics: QuarterlyMetrics) -> Dict[str, object]:
    """One flat row: block fields are prefixed with their block name."""
    data = metrics.to_dict()
    row = {
        "partner_id": data["partner_id"],
        "quarter": data["quarter"],
        "health_score": data["health_score"],
        "risk_level": data["risk_level"],
        "risk_factors": ", ".join(data["risk_factors"]),
    }
    for block in METRIC_BLOCKS:
        for key, value in data[block].items():
            row[f"{block}_{key}"] = value
    return row


def metrics_to_dataframe(
    results: Iterable[Union[QuarterlyMetrics, PartnerMetricsReport]]
) -> pd.DataFrame:
    """Build a DataFrame with one row per partner quarter."""
    rows = []
    for result in results:
        metrics = result.metrics if isinstance(result, PartnerMetricsReport) else result
        rows.append(flatten_metrics(metrics))
    return pd.DataFrame(rows)


def export_to_csv(df: pd.DataFrame) -> bytes:
    """
    Export DataFrame to CSV bytes.

    Args:
        df: DataFrame to export

    Returns:
        CSV content as bytes
    """
    return df.to_csv(index=False).encode('utf-8')


def _column_width(df: pd.DataFrame, column: str) -> int:
    longest_value = int(df[column].astype(str).str.len().max()) if not df.empty else 0
    return min(max(longest_value, len(str(column))) + 2, MAX_COLUMN_WIDTH)


def _write_sheet(writer: pd.ExcelWriter, sheet_name: str, df: pd.DataFrame, formats: Dict[str, object]):
    df.to_excel(writer, sheet_name=sheet_name, index=False, startrow=1, header=False)
    worksheet = writer.sheets[sheet_name]
    units = column_units()

    for col_num, column in enumerate(df.columns):
        worksheet.write(0, col_num, column, formats["header"])
        cell_format = formats.get(units.get(column), formats["cell"])
        worksheet.set_column(col_num, col_num, _column_width(df, column), cell_format)


def export_to_excel(dataframes: Dict[str, pd.DataFrame]) -> bytes:
    """
    Export multiple DataFrames to Excel with multiple sheets.

    Currency and percentage columns are formatted from the metric field units.

    Args:
        dataframes: Dictionary of {sheet_name: DataFrame}

    Returns:
        Excel file content as bytes
    """
    output = io.BytesIO()

    with pd.ExcelWriter(output, engine='xlsxwriter') as writer:
        workbook = writer.book
        formats = {unit: workbook.add_format(options) for unit, options in UNIT_FORMATS.items()}
        formats["header"] = workbook.add_format(HEADER_FORMAT)
        formats["cell"] = workbook.add_format({"border": 1})

        for sheet_name, df in dataframes.items():
            _write_sheet(writer, sheet_name, df, formats)

    return output.getvalue()
