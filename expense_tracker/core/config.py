"""
Application configuration.

Every setting is read from the environment (optionally via a .env file)
with a development-friendly default.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes", "on"}


# Base directory of the project (parent of 'expense_tracker')
BASE_DIR = Path(__file__).resolve().parent.parent.parent

# Database
DB_DIR = BASE_DIR / "db"
DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"sqlite+aiosqlite:///{DB_DIR / 'expense_tracker.db'}"
)
SQL_DEBUG = _env_bool("SQL_DEBUG")

# API
API_PREFIX = "/api/v1"
ENABLE_DOCS = _env_bool("ENABLE_DOCS", "true")
DEBUG = _env_bool("DEBUG")

# JWT - access and refresh tokens are signed with independent secrets
JWT_ALGORITHM = "HS256"
JWT_ACCESS_SECRET = os.getenv("JWT_ACCESS_SECRET") or os.getenv("JWT_SECRET")
JWT_REFRESH_SECRET = os.getenv("JWT_REFRESH_SECRET")
ACCESS_TOKEN_EXPIRE_SECONDS = int(os.getenv("ACCESS_TOKEN_EXPIRE_SECONDS", "3600"))
REFRESH_TOKEN_EXPIRE_DAYS = int(os.getenv("REFRESH_TOKEN_EXPIRE_DAYS", "7"))
TOKEN_ISSUER = os.getenv("TOKEN_ISSUER", "expense-tracker")

# Password hashing (bcrypt)
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))

# Refresh-token hashing (argon2id, tuned for throughput)
REFRESH_HASH_TIME_COST = int(os.getenv("REFRESH_HASH_TIME_COST", "2"))
REFRESH_HASH_MEMORY_COST = int(os.getenv("REFRESH_HASH_MEMORY_COST", "19456"))
REFRESH_HASH_PARALLELISM = int(os.getenv("REFRESH_HASH_PARALLELISM", "1"))

# OAuth2 providers
GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID")
GOOGLE_CLIENT_SECRET = os.getenv("GOOGLE_CLIENT_SECRET")
GOOGLE_CALLBACK_URL = os.getenv("GOOGLE_CALLBACK_URL", f"{API_PREFIX}/auth/google/callback")

GITHUB_CLIENT_ID = os.getenv("GITHUB_CLIENT_ID")
GITHUB_CLIENT_SECRET = os.getenv("GITHUB_CLIENT_SECRET")
GITHUB_CALLBACK_URL = os.getenv("GITHUB_CALLBACK_URL", f"{API_PREFIX}/auth/github/callback")

FACEBOOK_CLIENT_ID = os.getenv("FACEBOOK_CLIENT_ID")
FACEBOOK_CLIENT_SECRET = os.getenv("FACEBOOK_CLIENT_SECRET")
FACEBOOK_CALLBACK_URL = os.getenv("FACEBOOK_CALLBACK_URL", f"{API_PREFIX}/auth/facebook/callback")

OAUTH_HTTP_TIMEOUT = float(os.getenv("OAUTH_HTTP_TIMEOUT", "30"))

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_JSON = _env_bool("LOG_JSON", "true")

# Optional bootstrap administrator
DEFAULT_ADMIN_EMAIL = os.getenv("DEFAULT_ADMIN_EMAIL")
DEFAULT_ADMIN_PASSWORD = os.getenv("DEFAULT_ADMIN_PASSWORD")

# HTTP hardening
TRUSTED_HOSTS = [h.strip() for h in os.getenv("TRUSTED_HOSTS", "*").split(",") if h.strip()]
ENABLE_HSTS = _env_bool("ENABLE_HSTS")


def get_cors_allow_origins() -> list[str]:
    """Allowed CORS origins, comma separated in CORS_ALLOW_ORIGINS."""
    raw = os.getenv("CORS_ALLOW_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000")
    return [origin.strip() for origin in raw.split(",") if origin.strip()]
