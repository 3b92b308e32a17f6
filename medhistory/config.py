"""
Centralised configuration constants and environment helpers.
"""

import os
import sys

from dotenv import load_dotenv

load_dotenv()

# ── Roles ────────────────────────────────────────────────────────────
DEFAULT_ROLE = "USER"

# Seeded into the "rol" allow-list by `init-db`; more can be added later.
SEED_ROLES = ("USER", "DOCTOR", "ADMIN")

# ── History ──────────────────────────────────────────────────────────
UNKNOWN_NAME = "Unknown"

# ── Registration ─────────────────────────────────────────────────────
MIN_PASSWORD_LENGTH = 6

# bcrypt only hashes the first 72 bytes and newer releases refuse longer input
MAX_PASSWORD_BYTES = 72

# ── API server ───────────────────────────────────────────────────────
SECRET_KEY = os.getenv("JWT_SECRET_KEY", "dev-secret-key-change-in-production")
TOKEN_EXPIRY_HOURS = 24
REFRESH_TOKEN_EXPIRY_DAYS = 30


def get_env(name: str) -> str:
    """Return an environment variable or exit with an error message."""
    value = os.getenv(name)
    if not value:
        print(f"ERROR: env var {name} is not set", file=sys.stderr)
        sys.exit(1)
    return value
