from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


def _env_bool(key: str, default: bool = False) -> bool:
    v = os.getenv(key)
    if v is None:
        return default
    return v.strip().lower() in {"1", "true", "yes", "y", "on"}


# Database: SQLite file next to the package unless overridden
DEFAULT_DB_PATH = Path(__file__).resolve().parents[1] / "dentalai.sqlite"
DATABASE_URL = os.getenv("DENTALAI_DATABASE_URL", f"sqlite:///{DEFAULT_DB_PATH}")
SQL_ECHO = _env_bool("DENTALAI_SQL_ECHO")

# Azure OpenAI (both endpoint and key are needed to enable the AI routes)
AZURE_OPENAI_ENDPOINT = os.getenv("AZURE_OPENAI_ENDPOINT", "").strip()
AZURE_OPENAI_API_KEY = os.getenv("AZURE_OPENAI_API_KEY", "").strip()
AZURE_OPENAI_DEPLOYMENT = os.getenv("AZURE_OPENAI_DEPLOYMENT", "gpt-4")
AZURE_OPENAI_API_VERSION = os.getenv("AZURE_OPENAI_API_VERSION", "2024-06-01")
AZURE_OPENAI_TIMEOUT = float(os.getenv("AZURE_OPENAI_TIMEOUT", "60"))

# CORS: the Angular dev server is always allowed
FRONTEND_URL = os.getenv("DENTALAI_FRONTEND_URL", "").strip()
ALLOWED_ORIGINS = ["http://localhost:4200"] + ([FRONTEND_URL] if FRONTEND_URL else [])

LOG_LEVEL = os.getenv("DENTALAI_LOG_LEVEL", "INFO")
LOG_JSON = _env_bool("DENTALAI_LOG_JSON")
