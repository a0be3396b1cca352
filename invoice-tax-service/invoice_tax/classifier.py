"""
Jurisdiction-aware tax classification.

The classification is an ordered list of rules (`TAX_RULES`). Each rule is a
predicate over a `TaxContext` plus the category it assigns; the first rule
whose predicate holds wins. The last rule always matches, so every input maps
to exactly one category.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Optional, Tuple

from .events import EventHook, TaxEventType, emit
from .extractor import EXEMPT_REASONS, ZERO_RATE
from .schema import UNKNOWN_COUNTRY, TaxCategory, TaxClassification, TaxExtraction


EU_COUNTRIES = frozenset(
    {
        "AT", "BE", "BG", "HR", "CY", "CZ", "DK", "EE", "FI",
        "FR", "DE", "GR", "HU", "IE", "IT", "LV", "LT", "LU",
        "MT", "NL", "PL", "PT", "RO", "SK", "SI", "ES", "SE",
    }
)

REVERSE_CHARGE_MARKERS = ("reverse charge", "reverse", "rc")

RATE_SUFFIXES = {
    TaxCategory.REVERSE_CHARGE: " (RC)",
    TaxCategory.EXPORT: " (Export)",
    TaxCategory.TAX_FREE: " (Tax-free)",
    TaxCategory.OSS: " (OSS)",
    TaxCategory.STANDARD: "",
}


def is_eu_country(country: str) -> bool:
    return country in EU_COUNTRIES


@dataclass(frozen=True)
class TaxContext:
    """Everything a rule may look at for one invoice."""

    company_country: str
    customer_country: str
    tax_amount: Decimal
    extraction: TaxExtraction

    @property
    def company_eu(self) -> bool:
        return is_eu_country(self.company_country)

    @property
    def customer_eu(self) -> bool:
        return is_eu_country(self.customer_country)

    @property
    def intra_eu(self) -> bool:
        """Both parties in the EU, in different member states."""
        return (
            self.company_eu
            and self.customer_eu
            and self.customer_country != self.company_country
        )

    @property
    def eu_to_non_eu(self) -> bool:
        return self.company_eu and not self.customer_eu

    @property
    def exempt_reason(self) -> bool:
        return self.extraction.taxability_reason in EXEMPT_REASONS

    @property
    def reverse_charge_label(self) -> bool:
        name = (self.extraction.display_name or "").lower()
        return any(marker in name for marker in REVERSE_CHARGE_MARKERS)

    @property
    def unknown_customer(self) -> bool:
        return self.customer_country == UNKNOWN_COUNTRY

    @property
    def untaxed(self) -> bool:
        return self.tax_amount == 0

    @property
    def taxed(self) -> bool:
        return self.tax_amount > 0


@dataclass(frozen=True)
class TaxRule:
    """A named predicate and the category it assigns."""

    name: str
    predicate: Callable[[TaxContext], bool]
    category: TaxCategory
    anomalous: bool = False

    def matches(self, ctx: TaxContext) -> bool:
        return self.predicate(ctx)


TAX_RULES: Tuple[TaxRule, ...] = (
    TaxRule(
        "reverse_charge_label",
        lambda c: c.reverse_charge_label,
        TaxCategory.REVERSE_CHARGE,
    ),
    TaxRule(
        "exempt_export",
        lambda c: c.exempt_reason and c.eu_to_non_eu,
        TaxCategory.EXPORT,
    ),
    TaxRule(
        "exempt_intra_eu",
        lambda c: c.exempt_reason and c.intra_eu,
        TaxCategory.REVERSE_CHARGE,
    ),
    TaxRule("exempt_other", lambda c: c.exempt_reason, TaxCategory.TAX_FREE),
    TaxRule(
        "unknown_customer_untaxed",
        lambda c: c.unknown_customer and c.untaxed,
        TaxCategory.TAX_FREE,
    ),
    TaxRule("unknown_customer_taxed", lambda c: c.unknown_customer, TaxCategory.STANDARD),
    TaxRule(
        "untaxed_intra_eu",
        lambda c: c.untaxed and c.intra_eu,
        TaxCategory.REVERSE_CHARGE,
    ),
    TaxRule(
        "untaxed_export",
        lambda c: c.untaxed and c.eu_to_non_eu,
        TaxCategory.EXPORT,
    ),
    TaxRule(
        "untaxed_outside_eu",
        lambda c: c.untaxed and not c.company_eu and not c.customer_eu,
        TaxCategory.STANDARD,
    ),
    TaxRule("untaxed_other", lambda c: c.untaxed, TaxCategory.TAX_FREE),
    TaxRule("taxed_intra_eu", lambda c: c.taxed and c.intra_eu, TaxCategory.OSS),
    # Tax on an export points at a provider misconfiguration; kept as Export
    # and reported through the event hook.
    TaxRule(
        "taxed_export",
        lambda c: c.taxed and c.eu_to_non_eu,
        TaxCategory.EXPORT,
        anomalous=True,
    ),
    TaxRule(
        "taxed_domestic",
        lambda c: c.taxed and c.customer_country == c.company_country,
        TaxCategory.STANDARD,
    ),
    TaxRule("taxed_other", lambda c: c.taxed, TaxCategory.STANDARD),
    TaxRule("default", lambda c: True, TaxCategory.STANDARD),
)


def match_rule(ctx: TaxContext) -> TaxRule:
    """Return the first rule in `TAX_RULES` that matches."""
    for rule in TAX_RULES:
        if rule.matches(ctx):
            return rule
    # The "default" rule always matches.
    raise AssertionError("no tax rule matched")


def format_tax_rate(rate: str, category: TaxCategory) -> str:
    """Rate label such as '19%', '0% (RC)' or '21% (OSS)'."""
    return f"{rate}%{RATE_SUFFIXES[category]}"


def classify_tax(
    company_country: str,
    customer_country: str,
    tax_amount,
    extraction: TaxExtraction,
    on_event: Optional[EventHook] = None,
) -> TaxClassification:
    """
    Classify an invoice into a tax category.

    Parameters
    ----------
    company_country:
        Country code of the selling company.
    customer_country:
        Country code of the customer, or 'Unknown'.
    tax_amount:
        Extracted tax amount in major units.
    extraction:
        Output of `extract_tax_info`; rate, display name and reason are used.
    on_event:
        Optional callback receiving diagnostics.
    """
    ctx = TaxContext(
        company_country=company_country,
        customer_country=customer_country,
        tax_amount=Decimal(str(tax_amount)),
        extraction=extraction,
    )
    rule = match_rule(ctx)

    if rule.anomalous:
        emit(
            on_event,
            TaxEventType.ANOMALOUS_EXPORT,
            "tax charged on a sale from an EU company to a non-EU customer",
            company_country=company_country,
            customer_country=customer_country,
            tax_amount=str(tax_amount),
            rule=rule.name,
        )

    category = rule.category
    return TaxClassification(
        tax_info=category,
        is_reverse_charge=category is TaxCategory.REVERSE_CHARGE,
        tax_rate_display=format_tax_rate(extraction.rate or ZERO_RATE, category),
        rule=rule.name,
    )
