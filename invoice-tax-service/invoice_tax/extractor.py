"""
Tax extraction from heterogeneous invoice tax data.

Derives one `TaxExtraction` (amount, rate, display name, taxability reason)
from `InvoiceTaxFacts` using a fixed precedence:

1. line item taxes are summed,
2. provider total tax amounts override the sum when present,
3. a missing rate is back-calculated from gross and tax,
4. the invoice-level tax is used when nothing else produced an amount,
5. a zero amount always gets the rate "0".
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable, Optional, Tuple

from .events import EventHook, TaxEventType, emit
from .schema import InvoiceTaxFacts, TaxExtraction, TaxLine

ZERO = Decimal("0")
HUNDRED = Decimal("100")
ZERO_RATE = "0"

# Reasons meaning the provider deliberately charged no tax.
EXEMPT_REASONS = frozenset({"not_collecting", "not_subject_to_tax"})


def minor_to_major(amount_minor: int) -> Decimal:
    """Convert an amount in cents to major units."""
    return Decimal(amount_minor) / HUNDRED


def format_rate(value) -> str:
    """
    Render a percentage as text: integral rates without decimals ("19"),
    fractional rates with their significant digits ("8.875").
    """
    try:
        rate = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return ZERO_RATE
    if rate == rate.to_integral_value():
        return str(int(rate))
    return format(rate.normalize(), "f")


def back_calculate_rate(amount: Decimal, gross_amount: Decimal) -> Optional[str]:
    """
    Derive the rate from tax and gross: round(tax / (gross - tax) * 100).

    Returns None when the net denominator is zero or negative.
    """
    net = gross_amount - amount
    if net <= ZERO:
        return None
    rate = (amount / net * HUNDRED).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return str(int(rate))


def _scan_lines(
    lines: Iterable[TaxLine],
    rate: str,
    display_name: Optional[str],
    reason: Optional[str],
) -> Tuple[Decimal, str, Optional[str], Optional[str]]:
    """
    Sum tax lines and pick up rate, display name and reason.

    Rate and display name only come from entries carrying tax, so a zero
    entry never replaces a rate found earlier.
    """
    amount = ZERO
    for line in lines:
        amount += minor_to_major(line.amount_minor)
        if line.amount_minor > 0:
            if line.percentage is not None:
                rate = format_rate(line.percentage)
            if line.display_name:
                display_name = line.display_name
        if line.taxability_reason:
            reason = line.taxability_reason
    return amount, rate, display_name, reason


def extract_tax_info(
    facts: InvoiceTaxFacts, on_event: Optional[EventHook] = None
) -> TaxExtraction:
    """
    Extract the authoritative tax amount and rate of an invoice.

    Parameters
    ----------
    facts:
        Tax facts of the invoice.
    on_event:
        Optional callback receiving diagnostics (see `invoice_tax.events`).

    Returns
    -------
    TaxExtraction
        Always satisfies `amount == 0 => rate == "0"`.
    """
    amount, rate, display_name, reason = _scan_lines(
        facts.line_item_taxes, ZERO_RATE, None, None
    )

    if facts.total_tax_amounts:
        total, rate, display_name, reason = _scan_lines(
            facts.total_tax_amounts, rate, display_name, reason
        )
        if total > ZERO:
            amount = total
        elif total == ZERO:
            amount = ZERO
            if reason in EXEMPT_REASONS:
                rate = ZERO_RATE

    if amount > ZERO and rate == ZERO_RATE:
        rate = back_calculate_rate(amount, facts.gross_amount) or ZERO_RATE

    invoice_tax = facts.invoice_level_tax_amount_minor
    if amount == ZERO and invoice_tax is not None and invoice_tax > 0:
        amount = minor_to_major(invoice_tax)
        rate = back_calculate_rate(amount, facts.gross_amount) or ZERO_RATE
        emit(
            on_event,
            TaxEventType.INVOICE_LEVEL_FALLBACK,
            "no line or total tax data, using invoice-level tax",
            amount=str(amount),
            rate=rate,
        )

    if amount == ZERO:
        rate = ZERO_RATE
    elif rate == ZERO_RATE:
        emit(
            on_event,
            TaxEventType.RATE_UNRESOLVED,
            "tax charged but rate could not be determined",
            amount=str(amount),
            gross_amount=str(facts.gross_amount),
        )

    return TaxExtraction(
        amount=amount,
        rate=rate,
        display_name=display_name,
        taxability_reason=reason,
    )
