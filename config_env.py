# Configuration from environment variables (.env or Railway Variables).

import os
from dotenv import load_dotenv

load_dotenv()


def _env(key: str, default: str = "") -> str:
    return os.environ.get(key, default).strip()


def _env_float(key: str, default: float) -> float:
    try:
        return float(_env(key, str(default)))
    except ValueError:
        return default


def _env_str_list(key: str, default: list = None) -> list:
    s = _env(key)
    if not s:
        return default or []
    s = s.strip().strip("[]")
    result = []
    for x in s.split(","):
        x = x.strip().strip("[]").strip("\"'")
        if x:
            result.append(x)
    return result


# ============================================================================
# Database
# ============================================================================
DATABASE_URL = _env("DATABASE_URL")
DATABASE_URL_FALLBACK = _env("DATABASE_URL_FALLBACK", "sqlite+aiosqlite:///./local_backend.db")

# ============================================================================
# Logging
# ============================================================================
LOG_LEVEL = _env("LOG_LEVEL", "INFO").upper()

# ============================================================================
# Sessions
# ============================================================================
SESSION_COOKIE_NAME = _env("SESSION_COOKIE_NAME", "session_token")

# ============================================================================
# Plugins
# ============================================================================
# A module load slower than this counts as a load failure for that plugin only
PLUGIN_LOAD_TIMEOUT_SECONDS = _env_float("PLUGIN_LOAD_TIMEOUT_SECONDS", 5.0)

# Built-in plugin ids that should not be registered at startup
DISABLED_PLUGINS = _env_str_list("DISABLED_PLUGINS")

# ============================================================================
# Seeding / serving
# ============================================================================
SEED_DATA_DIR = _env("SEED_DATA_DIR")
PORT = _env("PORT", "8000")

# Backend API URL (for the HTTP client)
BACKEND_URL = _env("BACKEND_URL", "http://localhost:8000")
