from __future__ import annotations

from decimal import Decimal

import pytest

from invoice_tax.schema import InvoiceRecord, InvoiceTaxFacts, TaxLine


def make_facts(
    gross="119.00",
    customer_country="DE",
    company_country="DE",
    currency="EUR",
    lines=None,
    totals=None,
    invoice_tax=None,
) -> InvoiceTaxFacts:
    return InvoiceTaxFacts(
        gross_amount=Decimal(gross),
        currency=currency,
        customer_country=customer_country,
        company_country=company_country,
        line_item_taxes=lines or [],
        invoice_level_tax_amount_minor=invoice_tax,
        total_tax_amounts=totals,
    )


def make_record(number="INV-1", customer="ACME", **facts) -> InvoiceRecord:
    return InvoiceRecord(
        invoice_number=number, customer_name=customer, facts=make_facts(**facts)
    )


def tax_line(amount_minor, percentage=None, display_name=None, reason=None) -> TaxLine:
    return TaxLine(
        amount_minor=amount_minor,
        percentage=percentage,
        display_name=display_name,
        taxability_reason=reason,
    )


@pytest.fixture
def stripe_invoice() -> dict:
    """A paid invoice as returned by the provider with expansions."""
    return {
        "id": "in_1",
        "number": "A1B2-0001",
        "currency": "eur",
        "created": 1709640000,  # 2024-03-05 12:00 UTC
        "amount_paid": 11900,
        "total": 11900,
        "tax": 1900,
        "customer": {
            "id": "cus_1",
            "name": "Muster GmbH",
            "email": "billing@muster.example",
            "address": {"country": "DE"},
        },
        "lines": {
            "data": [
                {
                    "amount": 10000,
                    "tax_amounts": [
                        {
                            "amount": 1900,
                            "inclusive": False,
                            "tax_rate": {"percentage": 19.0, "display_name": "MwSt"},
                            "taxability_reason": "standard_rated",
                        }
                    ],
                }
            ]
        },
        "total_tax_amounts": [
            {
                "amount": 1900,
                "inclusive": False,
                "tax_rate": {"percentage": 19.0, "display_name": "MwSt"},
                "taxability_reason": "standard_rated",
            }
        ],
    }
