"""
Simple configuration management.

The ``Settings`` dataclass reads configuration directly from
environment variables.  Defaults are provided for all fields so that
the API can be started locally without any setup.  In a production
deployment override them via environment variables.
"""

import os
from dataclasses import dataclass
from decimal import Decimal


@dataclass
class Settings:
    """Application settings loaded from environment variables."""

    project_name: str = os.getenv("PROJECT_NAME", "Gym Desk API")
    api_version: str = os.getenv("API_VERSION", "1.0.0")
    debug: bool = os.getenv("DEBUG", "false").lower() in {"1", "true", "yes"}
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_file: str = os.getenv("LOG_FILE", "")

    # Path to the SQLite database file.  Relative paths are resolved
    # against the project root by ``core.db``.
    database_url: str = os.getenv("DATABASE_URL", "gym_desk.db")

    # Fraction of the invoice subtotal charged as tax (GST).
    tax_rate: Decimal = Decimal(os.getenv("TAX_RATE", "0.18"))

    # Days between invoice creation and the default due date.
    invoice_due_days: int = int(os.getenv("INVOICE_DUE_DAYS", "30"))

    # Seconds between membership expiry sweeps.  ``0`` disables the
    # periodic sweep; a sweep still runs once on startup.
    expiry_sweep_interval: int = int(os.getenv("EXPIRY_SWEEP_INTERVAL", "3600"))

    # Optional shared bearer token.  When empty, any bearer token of at
    # least ten characters is accepted (demo mode).
    api_token: str = os.getenv("API_TOKEN", "")


# Instantiate settings once so other modules can import it without
# repeatedly reading environment variables.  Environment variables
# must be set before importing this module.
settings = Settings()
