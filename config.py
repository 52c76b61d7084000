"""
Pipeline settings and logging setup.
"""
import os
import logging
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

ENV_PREFIX = "INGEST_"


class ValidationPolicy(str, Enum):
    """How strictly rows are validated before becoming records."""
    LENIENT = "lenient"
    STRICT = "strict"


class PipelineSettings(BaseModel):
    """Tunable knobs of the ingestion pipeline."""
    base_currency: str = Field("USD", description="Currency assigned when a row carries none")
    validation_policy: ValidationPolicy = ValidationPolicy.LENIENT

    # PDF band-and-column inference
    band_tolerance: float = Field(5.0, gt=0, description="Max vertical distance for fragments in one band")
    column_proximity: float = Field(50.0, gt=0, description="Max horizontal distance from a column anchor")
    header_scan_lines: int = Field(20, ge=1, description="Lines searched for a document-level date")

    # Error reporting
    max_error_samples: int = Field(5, ge=1)
    debug_trail_size: int = Field(5, ge=0)

    extract_tags: bool = True
    detect_duplicates: bool = True
    csv_encodings: List[str] = Field(default_factory=lambda: ['utf-8', 'utf-8-sig', 'latin1', 'cp1252'])

    @field_validator('base_currency')
    @classmethod
    def upper_currency(cls, v: str) -> str:
        """Currency codes are stored upper-case."""
        v = v.strip().upper()
        if len(v) != 3 or not v.isalpha():
            raise ValueError('base_currency must be a 3-letter ISO code')
        return v

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> "PipelineSettings":
        """
        Build settings from INGEST_* environment variables.

        Unset variables keep their defaults. Example: INGEST_BASE_CURRENCY=EUR,
        INGEST_VALIDATION_POLICY=strict, INGEST_COLUMN_PROXIMITY=40.
        """
        environ = os.environ if environ is None else environ
        values = {}
        for name, field in cls.model_fields.items():
            raw = environ.get(f"{ENV_PREFIX}{name.upper()}")
            if raw is None:
                continue
            if field.annotation is bool:
                values[name] = raw.strip().lower() in ('1', 'true', 'yes', 'on')
            elif name == 'csv_encodings':
                values[name] = [enc.strip() for enc in raw.split(',') if enc.strip()]
            else:
                values[name] = raw
        return cls(**values)


def setup_logging(verbose: bool = False, log_file: Optional[str] = None) -> None:
    """Configure root logging for command line use."""
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )
