"""
Detail rows, summary buckets and the batch export runner.

The main entrypoints are:
- `process_invoice` for a single invoice record
- `summarize` to fold detail rows into summary buckets
- `merge_summaries` to combine partial summaries computed separately
- `process_invoices` for a batch, returning a full `ExportReport`

Summary buckets are keyed by (country, tax rate label, currency) and come out
in the order their key was first seen.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Tuple

from .classifier import classify_tax
from .events import EventHook, log_event
from .extractor import extract_tax_info
from .schema import (
    DetailRow,
    ExportReport,
    ExportTotals,
    InvoiceRecord,
    SummaryBucket,
    TaxClassification,
    TaxExtraction,
)

logger = logging.getLogger(__name__)

BucketKey = Tuple[str, str, str]


def build_detail_row(
    record: InvoiceRecord,
    extraction: TaxExtraction,
    classification: TaxClassification,
) -> DetailRow:
    """
    Combine an invoice with its extracted tax and classification.
    """
    facts = record.facts
    return DetailRow(
        invoice_number=record.invoice_number,
        customer_name=record.customer_name,
        customer_country=facts.customer_country,
        invoice_date=record.invoice_date,
        currency=facts.currency,
        gross_amount=facts.gross_amount,
        net_amount=facts.gross_amount - extraction.amount,
        tax_amount=extraction.amount,
        tax_rate=classification.tax_rate_display,
        tax_info=classification.tax_info,
    )


def process_invoice(
    record: InvoiceRecord, on_event: Optional[EventHook] = None
) -> DetailRow:
    """
    Extract, classify and build the detail row for one invoice.
    """
    facts = record.facts
    extraction = extract_tax_info(facts, on_event=on_event)
    classification = classify_tax(
        facts.company_country,
        facts.customer_country,
        extraction.amount,
        extraction,
        on_event=on_event,
    )
    logger.debug(
        "Invoice %s classified by rule %s as %s",
        record.invoice_number,
        classification.rule,
        classification.tax_rate_display,
    )
    return build_detail_row(record, extraction, classification)


def _add_row(buckets: Dict[BucketKey, SummaryBucket], row: DetailRow) -> None:
    key = (row.customer_country, row.tax_rate, row.currency)
    bucket = buckets.get(key)
    if bucket is None:
        bucket = SummaryBucket(
            country=row.customer_country,
            tax_rate=row.tax_rate,
            currency=row.currency,
            tax_info=row.tax_info,
        )
        buckets[key] = bucket
    bucket.total_gross += row.gross_amount
    bucket.total_net += row.net_amount
    bucket.total_tax += row.tax_amount
    bucket.invoice_count += 1


def summarize(rows: Iterable[DetailRow]) -> List[SummaryBucket]:
    """
    Fold detail rows into summary buckets, in first-seen key order.

    Rows of the same country with different rate labels (e.g. '0% (RC)' and
    '21% (OSS)') stay in separate buckets.
    """
    buckets: Dict[BucketKey, SummaryBucket] = {}
    for row in rows:
        _add_row(buckets, row)
    return list(buckets.values())


def merge_summaries(*partials: Iterable[SummaryBucket]) -> List[SummaryBucket]:
    """
    Merge summaries computed over separate slices of invoices.

    Buckets with the same key are added together; the input buckets are not
    modified.
    """
    merged: Dict[BucketKey, SummaryBucket] = {}
    for partial in partials:
        for bucket in partial:
            existing = merged.get(bucket.key)
            if existing is None:
                merged[bucket.key] = bucket.model_copy()
                continue
            existing.total_gross += bucket.total_gross
            existing.total_net += bucket.total_net
            existing.total_tax += bucket.total_tax
            existing.invoice_count += bucket.invoice_count
    return list(merged.values())


def sort_buckets(buckets: Iterable[SummaryBucket]) -> List[SummaryBucket]:
    """Deterministic ordering by country, rate label and currency."""
    return sorted(buckets, key=lambda b: b.key)


def process_invoices(
    records: List[InvoiceRecord],
    company_country: str,
    on_event: Optional[EventHook] = log_event,
) -> ExportReport:
    """
    Run the export for a batch of invoices.

    `company_country` overrides the company country of every record so a run
    is always evaluated for one company. Detail rows keep the input order.
    """
    details: List[DetailRow] = []
    currencies: List[str] = []
    for record in records:
        if record.facts.company_country != company_country:
            record = record.model_copy(
                update={
                    "facts": record.facts.model_copy(
                        update={"company_country": company_country}
                    )
                }
            )
        row = process_invoice(record, on_event=on_event)
        details.append(row)
        if row.currency not in currencies:
            currencies.append(row.currency)

    summary = summarize(details)
    logger.info(
        "Processed %d invoices into %d summary buckets", len(details), len(summary)
    )

    return ExportReport(
        company_country=company_country,
        details=details,
        summary=summary,
        totals=ExportTotals(
            invoice_count=len(details),
            bucket_count=len(summary),
            currencies=currencies,
        ),
    )
