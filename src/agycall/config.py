"""Startup configuration validation and runtime settings.

Checks that the environment variables the telephony path needs are set
before the server accepts calls.  Called from bot.py at startup so that a
missing key causes a clear failure rather than a silent mid-call crash.
"""

import os
import sys
import logging

from agycall.conversation import DEFAULT_TRANSFER_DELAY_S

logger = logging.getLogger(__name__)

REQUIRED_VARS = [
    "DEEPGRAM_API_KEY",
    "ELEVENLABS_API_KEY",
    "TWILIO_ACCOUNT_SID",
    "TWILIO_AUTH_TOKEN",
]

OPTIONAL_VARS = [
    "DASHBOARD_CALLS_URL",
    "DASHBOARD_LOGS_URL",
    "DASHBOARD_WEBHOOK_SECRET",
    "PUBLIC_HOST",
    "TRANSFER_DELAY_S",
    "VOICE_PROVIDER",
    "LOG_LEVEL",
]

VOICE_PROVIDERS = ("text", "elevenlabs")


def validate_config() -> None:
    """Validate environment variables at startup.

    Exits the process with a clear error if any required variable is missing
    or empty.  Logs warnings for missing optional variables.
    """
    missing = [var for var in REQUIRED_VARS if not os.getenv(var)]

    if missing:
        print(
            f"\nFATAL: Missing required environment variables:\n"
            f"  {', '.join(missing)}\n"
            f"\nSet them in .env (local) or in the deployment's secrets.\n",
            file=sys.stderr,
        )
        sys.exit(1)

    for var in OPTIONAL_VARS:
        if not os.getenv(var):
            logger.warning("Optional env var %s is not set", var)


def transfer_delay(default: float = DEFAULT_TRANSFER_DELAY_S) -> float:
    """Seconds between a transfer phrase and the new agent's greeting."""
    raw = os.getenv("TRANSFER_DELAY_S", "")
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Invalid TRANSFER_DELAY_S=%r, using %.1f", raw, default)
        return default
    if value < 0:
        logger.warning("Negative TRANSFER_DELAY_S=%r, using 0", raw)
        return 0.0
    return value


def voice_provider_kind() -> str:
    """Voice used by the text API: ``text`` (default) or ``elevenlabs``."""
    kind = os.getenv("VOICE_PROVIDER", "text").strip().lower() or "text"
    if kind not in VOICE_PROVIDERS:
        logger.warning("Unknown VOICE_PROVIDER=%r, using text", kind)
        return "text"
    return kind
