"""
Command-line interface for the Invoice Tax Export Service.

Usage examples:
    invoice-tax export --input invoices.json --output-dir output/2024/05
    invoice-tax export --input invoices.json --company-country AT --report output/report.json
    invoice-tax classify --company-country DE --customer-country FR --tax-amount 0
"""

from __future__ import annotations

import json
from decimal import Decimal
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError

from .aggregator import process_invoices
from .classifier import classify_tax
from .config import Settings, configure_logging, load_settings
from .extractor import format_rate
from .payload import PayloadError, invoice_records_from_payloads
from .report import write_json_report, write_report
from .schema import UNKNOWN_COUNTRY, TaxExtraction

app = typer.Typer(help="Tax classification and accounting export for paid invoices.")


def _fail(message: str) -> None:
    typer.echo(message, err=True)
    raise typer.Exit(code=1)


@app.command()
def export(
    input: str = typer.Option(
        ...,
        "--input",
        help="JSON file containing a list of provider invoice objects.",
    ),
    output_dir: Optional[str] = typer.Option(
        None,
        "--output-dir",
        help="Folder to write invoices_detailed.csv and invoices_summary.csv to.",
    ),
    company_country: Optional[str] = typer.Option(
        None,
        "--company-country",
        help="Country code of the selling company (overrides settings).",
    ),
    report: Optional[str] = typer.Option(
        None,
        "--report",
        help="Optional path to also write the full report as JSON.",
    ),
) -> None:
    """
    Classify invoices and write the accounting CSV files.
    """
    try:
        settings = load_settings()
        if company_country:
            settings = Settings.model_validate(
                {**settings.model_dump(), "company_country": company_country}
            )
    except ValidationError as e:
        _fail(f"Invalid settings: {e}")
    configure_logging(settings.log_level)

    input_path = Path(input)
    if not input_path.exists():
        _fail(f"Input JSON not found: {input_path}")

    try:
        payloads = json.loads(input_path.read_text(encoding="utf-8") or "[]")
        if not isinstance(payloads, list):
            raise PayloadError("input JSON must be a list of invoices")
        records = invoice_records_from_payloads(payloads, settings.company_country)
    except (json.JSONDecodeError, PayloadError, ValidationError) as e:
        _fail(f"Could not read invoices from {input_path}: {e}")

    if not records:
        typer.echo("No paid invoices found in input.")
        return

    report_obj = process_invoices(records, settings.company_country)

    folder = Path(output_dir) if output_dir else settings.output_dir
    detailed_path, summary_path = write_report(report_obj, folder)
    if report:
        write_json_report(report_obj, Path(report))

    typer.echo(f"Invoices: {report_obj.totals.invoice_count}")
    typer.echo(f"Summary buckets: {report_obj.totals.bucket_count}")
    typer.echo(f"Detailed: {detailed_path}")
    typer.echo(f"Summary: {summary_path}")


@app.command()
def classify(
    company_country: str = typer.Option(..., "--company-country"),
    customer_country: str = typer.Option(UNKNOWN_COUNTRY, "--customer-country"),
    tax_amount: str = typer.Option("0", "--tax-amount", help="Tax in major units."),
    rate: Optional[str] = typer.Option(None, "--rate", help="Tax rate percentage."),
    display_name: Optional[str] = typer.Option(None, "--display-name"),
    reason: Optional[str] = typer.Option(None, "--reason", help="Taxability reason."),
) -> None:
    """
    Classify a single invoice from its countries and tax amount.
    """
    try:
        amount = Decimal(tax_amount)
    except ArithmeticError:
        _fail(f"Invalid tax amount: {tax_amount}")

    extraction = TaxExtraction(
        amount=amount,
        rate=format_rate(rate) if rate and amount != 0 else "0",
        display_name=display_name,
        taxability_reason=reason,
    )
    result = classify_tax(
        company_country.upper(),
        customer_country if customer_country == UNKNOWN_COUNTRY else customer_country.upper(),
        amount,
        extraction,
    )
    typer.echo(f"Tax info: {result.tax_info.value}")
    typer.echo(f"Tax rate: {result.tax_rate_display}")
    typer.echo(f"Reverse charge: {'yes' if result.is_reverse_charge else 'no'}")
    typer.echo(f"Rule: {result.rule}")


def main() -> None:
    """
    Entrypoint used when executing as a module.
    """
    app()


if __name__ == "__main__":
    main()
