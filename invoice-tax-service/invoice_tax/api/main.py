"""
FastAPI application for the Invoice Tax Export Service.

Endpoints
---------
- GET /health
- POST /classify
- POST /export          (provider invoice payloads)
- POST /export-facts    (already normalized invoice records)
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from ..aggregator import process_invoices
from ..classifier import classify_tax
from ..config import load_settings
from ..payload import PayloadError, invoice_records_from_payloads
from ..schema import ExportReport, InvoiceRecord, TaxClassification, TaxExtraction

app = FastAPI(title="Invoice Tax Export Service", version="1.0.0")

# Basic CORS configuration (can be tightened in production)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class ClassifyRequest(BaseModel):
    company_country: str = Field(..., description="Country code of the company.")
    customer_country: str = Field(..., description="Customer country or 'Unknown'.")
    tax_amount: Decimal = Field(default=Decimal("0"), description="Tax in major units.")
    extraction: TaxExtraction = Field(default_factory=TaxExtraction)


def _company_country(value: Optional[str]) -> str:
    return value.upper() if value else load_settings().company_country


@app.get("/health")
async def health() -> dict:
    """
    Simple health-check endpoint.
    """
    return {"status": "ok"}


@app.post("/classify", response_model=TaxClassification)
async def classify(request: ClassifyRequest) -> TaxClassification:
    """
    Classify one invoice from its countries, tax amount and extracted tax.
    """
    return classify_tax(
        request.company_country,
        request.customer_country,
        request.tax_amount,
        request.extraction,
    )


@app.post("/export", response_model=ExportReport)
async def export(
    invoices: List[Dict[str, Any]],
    company_country: Optional[str] = Query(default=None, min_length=2, max_length=2),
) -> ExportReport:
    """
    Classify provider invoice payloads and return details plus summary.

    Body should be a JSON array of invoice objects as returned by the
    provider, with customer, lines and tax amounts expanded.
    """
    country = _company_country(company_country)
    try:
        records = invoice_records_from_payloads(invoices, country)
    except PayloadError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return process_invoices(records, country)


@app.post("/export-facts", response_model=ExportReport)
async def export_facts(
    records: List[InvoiceRecord],
    company_country: Optional[str] = Query(default=None, min_length=2, max_length=2),
) -> ExportReport:
    """
    Classify invoice records whose tax facts were prepared by the caller.
    """
    return process_invoices(records, _company_country(company_country))


# For local development convenience:
#   uvicorn invoice_tax.api.main:app --reload
