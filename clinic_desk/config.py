"""Runtime configuration loaded from the environment / .env file."""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(override=True)


def _float_or_none(value: str | None) -> float | None:
    if not value:
        return None
    return float(value)


# sqlite (local file) or rest (remote PostgREST-style store)
STORE_BACKEND = os.getenv("CLINIC_STORE_BACKEND", "sqlite").lower()

DB_PATH = Path(os.getenv("CLINIC_DB_PATH", str(Path(__file__).parent / "clinic_desk.db")))

STORE_URL = os.getenv("CLINIC_STORE_URL", "")
STORE_KEY = os.getenv("CLINIC_STORE_KEY", "")

# Requests to the remote store wait indefinitely unless this is set
STORE_TIMEOUT = _float_or_none(os.getenv("CLINIC_STORE_TIMEOUT"))

SLOT_MINUTES = int(os.getenv("CLINIC_SLOT_MINUTES", "30"))
SEARCH_LIMIT = int(os.getenv("CLINIC_SEARCH_LIMIT", "5"))

LOG_LEVEL = os.getenv("CLINIC_LOG_LEVEL", "WARNING").upper()
