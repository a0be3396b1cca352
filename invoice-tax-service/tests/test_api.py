import pytest
from fastapi.testclient import TestClient

from invoice_tax.api.main import app

client = TestClient(app)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    monkeypatch.delenv("INVOICE_TAX_COMPANY_COUNTRY", raising=False)
    monkeypatch.chdir(tmp_path)


def test_health():
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_classify():
    response = client.post(
        "/classify",
        json={
            "company_country": "DE",
            "customer_country": "FR",
            "tax_amount": "20",
            "extraction": {"amount": "20", "rate": "20"},
        },
    )
    assert response.status_code == 200
    body = response.json()
    assert body["tax_info"] == "OSS"
    assert body["tax_rate_display"] == "20% (OSS)"
    assert body["is_reverse_charge"] is False


def test_export_payloads(stripe_invoice):
    response = client.post("/export?company_country=DE", json=[stripe_invoice])
    assert response.status_code == 200
    body = response.json()
    assert body["details"][0]["tax_rate"] == "19%"
    assert body["summary"][0]["invoice_count"] == 1


def test_export_defaults_company_country_from_settings(stripe_invoice, monkeypatch):
    monkeypatch.setenv("INVOICE_TAX_COMPANY_COUNTRY", "AT")
    response = client.post("/export", json=[stripe_invoice])
    assert response.status_code == 200
    assert response.json()["company_country"] == "AT"
    assert response.json()["details"][0]["tax_info"] == "OSS"


def test_export_malformed_payload_is_422():
    response = client.post("/export", json=[{"id": "in_1"}])
    assert response.status_code == 422


def test_export_facts_nl_buckets():
    records = [
        {
            "invoice_number": "B2B",
            "facts": {
                "gross_amount": "100.00",
                "currency": "EUR",
                "customer_country": "NL",
                "company_country": "DE",
            },
        },
        {
            "invoice_number": "B2C",
            "facts": {
                "gross_amount": "121.00",
                "currency": "EUR",
                "customer_country": "NL",
                "company_country": "DE",
                "line_item_taxes": [{"amount_minor": 2100, "percentage": "21"}],
            },
        },
    ]
    response = client.post("/export-facts?company_country=DE", json=records)
    assert response.status_code == 200
    labels = [b["tax_rate"] for b in response.json()["summary"]]
    assert labels == ["0% (RC)", "21% (OSS)"]


def test_export_non_numeric_amount_is_422(stripe_invoice):
    stripe_invoice["total_tax_amounts"][0]["amount"] = "abc"
    response = client.post("/export?company_country=DE", json=[stripe_invoice])
    assert response.status_code == 422
    assert "invalid amounts" in response.json()["detail"]


def test_export_non_numeric_percentage_is_422(stripe_invoice):
    stripe_invoice["total_tax_amounts"][0]["tax_rate"]["percentage"] = "x"
    response = client.post("/export?company_country=DE", json=[stripe_invoice])
    assert response.status_code == 422
