"""
Mapping of provider (Stripe-shaped) invoice payloads to `InvoiceRecord`.

The payloads are the JSON objects returned by the provider's invoice list
endpoint with customer, lines, tax rates and total tax amounts expanded.
Fetching and paging them is left to the caller.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, List, Optional

from .extractor import minor_to_major
from .schema import UNKNOWN_COUNTRY, InvoiceRecord, InvoiceTaxFacts, TaxLine

logger = logging.getLogger(__name__)


class PayloadError(ValueError):
    """Raised when an invoice payload lacks data needed for the export."""


def _as_dict(value: Any) -> Dict[str, Any]:
    # Unexpanded references arrive as plain id strings.
    return value if isinstance(value, dict) else {}


def _customer_fields(invoice: Dict[str, Any]) -> tuple:
    customer = _as_dict(invoice.get("customer"))
    name = (
        customer.get("name")
        or customer.get("email")
        or invoice.get("customer_name")
        or invoice.get("customer_email")
        or "Unknown"
    )
    address = _as_dict(customer.get("address")) or _as_dict(
        invoice.get("customer_address")
    )
    country = address.get("country") or UNKNOWN_COUNTRY
    return name, country.upper() if country != UNKNOWN_COUNTRY else country


def _tax_line(entry: Dict[str, Any]) -> TaxLine:
    tax_rate = _as_dict(entry.get("tax_rate"))
    return TaxLine(
        amount_minor=int(entry.get("amount") or 0),
        percentage=tax_rate.get("percentage"),
        display_name=tax_rate.get("display_name"),
        taxability_reason=entry.get("taxability_reason"),
    )


def _line_tax_from_rates(line: Dict[str, Any]) -> List[TaxLine]:
    """
    Compute taxes of a line that only lists its tax rates:
    line amount * percentage / 100, rounded to cents.
    """
    result = []
    amount = Decimal(int(line.get("amount") or 0))
    for rate in line.get("tax_rates") or []:
        rate = _as_dict(rate)
        percentage = rate.get("percentage")
        if percentage is None:
            continue
        tax = (amount * Decimal(str(percentage)) / Decimal("100")).quantize(
            Decimal("1"), rounding=ROUND_HALF_UP
        )
        result.append(
            TaxLine(
                amount_minor=int(tax),
                percentage=percentage,
                display_name=rate.get("display_name"),
            )
        )
    return result


def _line_item_taxes(invoice: Dict[str, Any]) -> List[TaxLine]:
    lines = _as_dict(invoice.get("lines")).get("data") or []
    if not isinstance(lines, list):
        raise PayloadError("invoice lines.data must be a list")
    taxes: List[TaxLine] = []
    for line in lines:
        line = _as_dict(line)
        if line.get("tax_amounts"):
            taxes.extend(_tax_line(_as_dict(e)) for e in line["tax_amounts"])
        elif line.get("tax_rates"):
            taxes.extend(_line_tax_from_rates(line))
    return taxes


def _invoice_date(created: Any) -> Optional[datetime]:
    if created is None:
        return None
    try:
        return datetime.fromtimestamp(int(created), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError) as e:
        raise PayloadError(f"invalid created timestamp: {created!r}") from e


def invoice_record_from_payload(
    invoice: Dict[str, Any], company_country: str
) -> InvoiceRecord:
    """
    Build an `InvoiceRecord` from one provider invoice payload.

    Raises
    ------
    PayloadError
        If the payload has no identifier, no currency, no amount, or
        amounts and rates that are not numbers.
    """
    if not isinstance(invoice, dict):
        raise PayloadError("invoice payload must be an object")

    invoice_number = invoice.get("number") or invoice.get("id")
    if not invoice_number:
        raise PayloadError("invoice payload has neither 'number' nor 'id'")
    currency = invoice.get("currency")
    if not currency:
        raise PayloadError(f"invoice {invoice_number} has no currency")
    gross_minor = invoice.get("amount_paid") or invoice.get("total")
    if gross_minor is None:
        raise PayloadError(f"invoice {invoice_number} has no amount_paid or total")

    customer_name, customer_country = _customer_fields(invoice)
    created = _invoice_date(invoice.get("created"))

    total_tax_amounts = invoice.get("total_tax_amounts")
    try:
        facts = InvoiceTaxFacts(
            gross_amount=minor_to_major(int(gross_minor)),
            currency=currency,
            customer_country=customer_country,
            company_country=company_country,
            line_item_taxes=_line_item_taxes(invoice),
            invoice_level_tax_amount_minor=invoice.get("tax"),
            total_tax_amounts=(
                [_tax_line(_as_dict(e)) for e in total_tax_amounts]
                if total_tax_amounts is not None
                else None
            ),
        )
        return InvoiceRecord(
            invoice_number=str(invoice_number),
            customer_name=customer_name,
            invoice_date=created.date() if created else None,
            facts=facts,
        )
    except PayloadError:
        raise
    except (TypeError, ValueError, ArithmeticError) as e:
        # Covers pydantic's ValidationError, a ValueError subclass.
        raise PayloadError(f"invoice {invoice_number} has invalid amounts: {e}") from e


def invoice_records_from_payloads(
    invoices: Iterable[Dict[str, Any]], company_country: str
) -> List[InvoiceRecord]:
    records = [invoice_record_from_payload(inv, company_country) for inv in invoices]
    logger.info("Loaded %d invoice payloads", len(records))
    return records
