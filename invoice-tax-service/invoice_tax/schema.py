"""
Data models for invoice tax facts, classifications and export reports.

All components (payload adapter, extractor, classifier, aggregator, report
writer, API, CLI) exchange these Pydantic models so they share one contract.
Money is carried as `Decimal` in major currency units unless a field name
says `_minor`.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

UNKNOWN_COUNTRY = "Unknown"


class TaxCategory(str, Enum):
    """
    Tax treatment assigned to an invoice. Values are the "Tax Info" text.
    """

    STANDARD = "Standard"
    REVERSE_CHARGE = "Reverse Charge"
    OSS = "OSS"
    EXPORT = "Export"
    TAX_FREE = "Tax-free"


class TaxLine(BaseModel):
    """
    One tax entry, either attached to a line item or to the invoice total.
    """

    amount_minor: int = Field(
        default=0, description="Tax amount in minor currency units (cents)."
    )
    percentage: Optional[Decimal] = Field(
        default=None, description="Tax rate percentage, e.g. 19 or 8.875."
    )
    display_name: Optional[str] = Field(
        default=None, description="Provider display name of the tax rate."
    )
    taxability_reason: Optional[str] = Field(
        default=None,
        description="Provider code explaining the taxability, e.g. 'not_collecting'.",
    )


class InvoiceTaxFacts(BaseModel):
    """
    Tax-relevant facts of a single paid invoice.

    Built by the payload adapter (or supplied directly by a caller). The engine
    treats it as read-only and does not validate country codes or signs.
    """

    model_config = ConfigDict(frozen=True)

    gross_amount: Decimal = Field(
        ..., description="Total charged, in major currency units."
    )
    currency: str = Field(..., description="ISO 4217 currency code.")
    customer_country: str = Field(
        default=UNKNOWN_COUNTRY,
        description="ISO 3166-1 alpha-2 code of the customer, or 'Unknown'.",
    )
    company_country: str = Field(
        ..., description="ISO 3166-1 alpha-2 code of the selling company."
    )
    line_item_taxes: List[TaxLine] = Field(
        default_factory=list, description="Tax entries of all line items."
    )
    invoice_level_tax_amount_minor: Optional[int] = Field(
        default=None,
        description="Invoice-level total tax in minor units, used as fallback.",
    )
    total_tax_amounts: Optional[List[TaxLine]] = Field(
        default=None,
        description="Provider aggregate tax entries; authoritative when non-zero.",
    )

    @field_validator("currency")
    @classmethod
    def upper_currency(cls, v: str) -> str:
        return v.upper()


class TaxExtraction(BaseModel):
    """
    The single authoritative tax tuple derived from an invoice.

    Invariant: an amount of zero always comes with the rate "0".
    """

    amount: Decimal = Field(
        default=Decimal("0"), description="Tax amount in major units."
    )
    rate: str = Field(default="0", description="Tax rate percentage as text.")
    display_name: Optional[str] = Field(
        default=None, description="Display name of the tax rate, if any."
    )
    taxability_reason: Optional[str] = Field(
        default=None, description="Taxability reason code, if any."
    )


class TaxClassification(BaseModel):
    """
    Result of classifying one invoice.
    """

    tax_info: TaxCategory = Field(..., description="Assigned tax category.")
    is_reverse_charge: bool = Field(
        default=False, description="True for reverse charge invoices."
    )
    tax_rate_display: str = Field(
        ..., description="Rate label with category suffix, e.g. '0% (RC)'."
    )
    rule: str = Field(
        default="default", description="Name of the classification rule that matched."
    )


class InvoiceRecord(BaseModel):
    """
    An invoice ready for export: descriptive fields plus its tax facts.
    """

    invoice_number: str = Field(..., description="Invoice number or provider id.")
    customer_name: str = Field(
        default="Unknown", description="Customer name, email, or 'Unknown'."
    )
    invoice_date: Optional[date] = Field(
        default=None, description="Invoice creation date."
    )
    facts: InvoiceTaxFacts


class DetailRow(BaseModel):
    """
    One row of the detailed export, one per invoice.
    """

    invoice_number: str
    customer_name: str
    customer_country: str
    invoice_date: Optional[date] = None
    currency: str
    gross_amount: Decimal
    net_amount: Decimal
    tax_amount: Decimal
    tax_rate: str = Field(..., description="Rate label, see TaxClassification.")
    tax_info: TaxCategory


class SummaryBucket(BaseModel):
    """
    Aggregate of all invoices sharing country, rate label and currency.
    """

    country: str
    tax_rate: str
    currency: str
    tax_info: TaxCategory
    total_gross: Decimal = Decimal("0")
    total_net: Decimal = Decimal("0")
    total_tax: Decimal = Decimal("0")
    invoice_count: int = 0

    @property
    def key(self) -> tuple:
        return (self.country, self.tax_rate, self.currency)


class ExportTotals(BaseModel):
    """
    Grand totals across all buckets, regardless of currency.
    """

    invoice_count: int = Field(..., description="Number of exported invoices.")
    bucket_count: int = Field(..., description="Number of summary buckets.")
    currencies: List[str] = Field(
        default_factory=list, description="Currencies seen, in first-seen order."
    )


class ExportReport(BaseModel):
    """
    Full result of an export run: detail rows in input order plus summary.
    """

    company_country: str
    details: List[DetailRow] = Field(default_factory=list)
    summary: List[SummaryBucket] = Field(default_factory=list)
    totals: ExportTotals
