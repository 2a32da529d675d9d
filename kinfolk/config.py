"""Centralized configuration for the Kinfolk assistant.

Secret resolution order (per variable):
  1. Environment variable / ``.env`` file  (local dev)
  2. AWS SSM Parameter Store SecureString  (when ``AWS_EXECUTION_ENV`` is set)

The SSM paths follow the convention ``/kinfolk/<VARIABLE_NAME>``.

Unlike a typical service, a missing ``ANTHROPIC_API_KEY`` does **not** stop
the process: the orchestrator answers every turn with its fallback text
until a key is configured.
"""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

# ── Feature flag: running on AWS? ────────────────────────────────────
_ON_AWS = bool(os.getenv("AWS_EXECUTION_ENV"))


# ── Secret resolution ────────────────────────────────────────────────

def _get_ssm_parameter(name: str) -> str | None:
    """Fetch a SecureString from SSM Parameter Store.

    Returns ``None`` if the parameter does not exist or boto3 is
    unavailable.  Errors are logged but never raised so that local-dev
    fallback still works.
    """
    try:
        import boto3  # noqa: PLC0415 (lazy, boto3 is an optional extra)

        ssm = boto3.client("ssm")
        resp = ssm.get_parameter(Name=f"/kinfolk/{name}", WithDecryption=True)
        return resp["Parameter"]["Value"]
    except Exception:
        logger.debug("SSM lookup for %s failed (expected locally)", name)
        return None


def _optional_secret(name: str) -> str | None:
    """Return a secret from env-var or SSM, or ``None`` with a warning."""
    value = os.getenv(name)
    if value and not value.startswith("your_"):
        return value

    if _ON_AWS:
        ssm_value = _get_ssm_parameter(name)
        if ssm_value:
            return ssm_value

    logger.warning(
        "Missing configuration: %s. Set it in .env (local) or SSM Parameter "
        "Store /kinfolk/%s (AWS). The assistant will reply with its fallback "
        "text until it is set.",
        name, name,
    )
    return None


# ── LLM ─────────────────────────────────────────────────────────────
ANTHROPIC_API_KEY: str | None = _optional_secret("ANTHROPIC_API_KEY")
MODEL_NAME: str = os.getenv("MODEL_NAME", "claude-sonnet-4-5")
MODEL_TEMPERATURE: float = float(os.getenv("MODEL_TEMPERATURE", "0.3"))
MODEL_MAX_TOKENS: int = int(os.getenv("MODEL_MAX_TOKENS", "1024"))
REQUEST_TIMEOUT_SECONDS: float = float(os.getenv("REQUEST_TIMEOUT_SECONDS", "30"))

# ── Conversation ────────────────────────────────────────────────────
# Number of prior user turns replayed to the model on every request.
MAX_HISTORY_TURNS: int = int(os.getenv("MAX_HISTORY_TURNS", "20"))
# Sessions kept in memory by the HTTP server; the least recently used idle
# session is dropped beyond this.
MAX_SESSIONS: int = int(os.getenv("MAX_SESSIONS", "1000"))

# ── Data ────────────────────────────────────────────────────────────
PEOPLE_DATA_PATH: str | None = os.getenv("PEOPLE_DATA_PATH") or None

# ── Server ──────────────────────────────────────────────────────────
SERVER_HOST: str = os.getenv("SERVER_HOST", "0.0.0.0")
SERVER_PORT: int = int(os.getenv("SERVER_PORT", "8000"))
CORS_ORIGINS: list[str] = os.getenv(
    "CORS_ORIGINS",
    "http://localhost:3000,http://localhost:5173",
).split(",")
