from __future__ import annotations

import logging
import os
from pathlib import Path


logger = logging.getLogger(__name__)


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r, using %s", name, raw, default)
        return default
    if value <= 0:
        logger.warning("Ignoring non-positive %s=%r, using %s", name, raw, default)
        return default
    return value


API_KEY = os.environ.get("GEMINI_API_KEY") or os.environ.get("API_KEY") or None
MODEL = os.environ.get("FLOWTYPE_MODEL", "gemini-2.5-flash")

# seconds between live metric refreshes
SAMPLE_INTERVAL = _env_float("FLOWTYPE_SAMPLE_INTERVAL", 0.1)

LOG_LEVEL = os.environ.get("FLOWTYPE_LOG_LEVEL", "INFO").upper()
DATA_DIR = Path(os.environ.get("FLOWTYPE_HOME") or Path.home() / ".flowtype")
LOG_FILE = DATA_DIR / "flowtype.log"


def is_online(api_key: str | None = API_KEY) -> bool:
    return bool(api_key)
