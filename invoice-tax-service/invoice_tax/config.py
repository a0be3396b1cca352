"""
Runtime settings, read from environment variables (and a `.env` file).

Variables
---------
- INVOICE_TAX_COMPANY_COUNTRY: country code of the selling company (default DE)
- INVOICE_TAX_OUTPUT_DIR: folder for exported files (default "output")
- INVOICE_TAX_LOG_LEVEL: logging level name (default INFO)
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"

ENV_PREFIX = "INVOICE_TAX_"


class Settings(BaseModel):
    """
    Settings shared by the CLI and the API.
    """

    company_country: str = Field(
        default="DE", description="ISO country code of the selling company."
    )
    output_dir: Path = Field(
        default=Path("output"), description="Folder for exported CSV/JSON files."
    )
    log_level: str = Field(default="INFO", description="Logging level name.")

    @field_validator("company_country")
    @classmethod
    def check_country(cls, v: str) -> str:
        v = v.strip().upper()
        if len(v) != 2 or not v.isalpha():
            raise ValueError("company_country must be a two-letter country code")
        return v

    @field_validator("log_level")
    @classmethod
    def check_log_level(cls, v: str) -> str:
        v = v.strip().upper()
        if not isinstance(logging.getLevelName(v), int):
            raise ValueError(f"unknown log level: {v}")
        return v


def load_settings(
    environ: Optional[Mapping[str, str]] = None, dotenv_path: Optional[Path] = None
) -> Settings:
    """
    Build `Settings` from `environ` (defaults to `os.environ` after loading
    a `.env` file without overriding variables already set).
    """
    if environ is None:
        load_dotenv(dotenv_path=dotenv_path, override=False)
        environ = os.environ

    values = {}
    for field_name in Settings.model_fields:
        raw = environ.get(ENV_PREFIX + field_name.upper())
        if raw:
            values[field_name] = raw
    return Settings(**values)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)
