"""Configuration management for the family finance tracker.

This module centralizes all configuration values including paths,
storage namespace, schema version and environment variable overrides.
"""

from __future__ import annotations

import os
from pathlib import Path

# Base project root - assumes this file is in family_finance/
_PROJECT_ROOT = Path(__file__).parent.parent.resolve()

# Data directories
DATA_DIR = Path(os.getenv("FAMILY_FINANCE_DATA_DIR", _PROJECT_ROOT / "data"))
STORE_DIR = DATA_DIR / "store"
EXPORTS_DIR = DATA_DIR / "exports"

# Every persisted key is prefixed with this namespace
STORAGE_NAMESPACE = os.getenv("FAMILY_FINANCE_NAMESPACE", "minha-conta")

# Bump when the persisted layout changes; initialize() re-seeds defaults on mismatch
SCHEMA_VERSION = "1.0.0"

# Labels used by CSV export and the dashboard ("en" or "pt-BR")
LOCALE = os.getenv("FAMILY_FINANCE_LOCALE", "en")

# Number of months shown by the trend report
TREND_MONTHS = 6


def ensure_data_directories() -> None:
    """Create all required data directories if they don't exist."""
    for directory in [DATA_DIR, STORE_DIR, EXPORTS_DIR]:
        directory.mkdir(parents=True, exist_ok=True)

