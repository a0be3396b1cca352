"""
CSV and JSON rendering of export reports.
"""

from __future__ import annotations

import csv
import io
import json
import logging
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from .schema import DetailRow, ExportReport, SummaryBucket

logger = logging.getLogger(__name__)

DETAILED_FILENAME = "invoices_detailed.csv"
SUMMARY_FILENAME = "invoices_summary.csv"

DETAILED_HEADER = [
    "Invoice Number",
    "Customer",
    "Country",
    "Date",
    "Currency",
    "Gross Amount",
    "Net Amount",
    "Tax Amount",
    "Tax Rate",
    "Tax Info",
]

SUMMARY_HEADER = [
    "Country",
    "Tax Rate",
    "Currency",
    "Tax Info",
    "Total Gross",
    "Total Net",
    "Total Tax",
    "Invoice Count",
]

CENT = Decimal("0.01")


def format_money(value: Decimal) -> str:
    """Two decimal places, half-up."""
    return str(Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP))


def format_date(value: Optional[date]) -> str:
    """German short date without zero padding, e.g. '5.3.2024'."""
    if value is None:
        return ""
    return f"{value.day}.{value.month}.{value.year}"


def _render(header: List[str], rows: Iterable[List[str]]) -> str:
    buffer = io.StringIO()
    # Header unquoted, data rows fully quoted.
    buffer.write(",".join(header) + "\n")
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerows(rows)
    return buffer.getvalue()


def render_detailed_csv(rows: Iterable[DetailRow]) -> str:
    return _render(
        DETAILED_HEADER,
        (
            [
                row.invoice_number,
                row.customer_name,
                row.customer_country,
                format_date(row.invoice_date),
                row.currency,
                format_money(row.gross_amount),
                format_money(row.net_amount),
                format_money(row.tax_amount),
                row.tax_rate,
                row.tax_info.value,
            ]
            for row in rows
        ),
    )


def render_summary_csv(buckets: Iterable[SummaryBucket]) -> str:
    return _render(
        SUMMARY_HEADER,
        (
            [
                bucket.country,
                bucket.tax_rate,
                bucket.currency,
                bucket.tax_info.value,
                format_money(bucket.total_gross),
                format_money(bucket.total_net),
                format_money(bucket.total_tax),
                str(bucket.invoice_count),
            ]
            for bucket in buckets
        ),
    )


def _ensure_directory(path: Path) -> None:
    if not path.exists():
        path.mkdir(parents=True, exist_ok=True)


def write_report(report: ExportReport, folder: Path) -> Tuple[Path, Path]:
    """
    Write the detailed and summary CSV files into `folder`.

    Returns the paths of the detailed and the summary file.
    """
    folder = Path(folder)
    _ensure_directory(folder)

    detailed_path = folder / DETAILED_FILENAME
    summary_path = folder / SUMMARY_FILENAME
    detailed_path.write_text(render_detailed_csv(report.details), encoding="utf-8")
    summary_path.write_text(render_summary_csv(report.summary), encoding="utf-8")

    logger.info("CSV files created: %s, %s", detailed_path, summary_path)
    return detailed_path, summary_path


def write_json_report(report: ExportReport, path: Path) -> Path:
    path = Path(path)
    _ensure_directory(path.parent)
    with path.open("w", encoding="utf-8") as f:
        json.dump(report.model_dump(mode="json"), f, indent=2, default=str)
    return path
