from pathlib import Path

import pytest
from pydantic import ValidationError

from invoice_tax.config import Settings, load_settings


def test_defaults():
    settings = load_settings(environ={})
    assert settings.company_country == "DE"
    assert settings.output_dir == Path("output")
    assert settings.log_level == "INFO"


def test_environment_values_are_normalized():
    settings = load_settings(
        environ={
            "INVOICE_TAX_COMPANY_COUNTRY": " at ",
            "INVOICE_TAX_OUTPUT_DIR": "exports",
            "INVOICE_TAX_LOG_LEVEL": "debug",
        }
    )
    assert settings.company_country == "AT"
    assert settings.output_dir == Path("exports")
    assert settings.log_level == "DEBUG"


def test_dotenv_file_is_read(tmp_path, monkeypatch):
    monkeypatch.delenv("INVOICE_TAX_COMPANY_COUNTRY", raising=False)
    env_file = tmp_path / ".env"
    env_file.write_text("INVOICE_TAX_COMPANY_COUNTRY=NL\n", encoding="utf-8")
    try:
        assert load_settings(dotenv_path=env_file).company_country == "NL"
    finally:
        monkeypatch.delenv("INVOICE_TAX_COMPANY_COUNTRY", raising=False)


@pytest.mark.parametrize(
    "field,value", [("company_country", "DEU"), ("company_country", "1A"), ("log_level", "LOUD")]
)
def test_invalid_values(field, value):
    with pytest.raises(ValidationError):
        Settings(**{field: value})
