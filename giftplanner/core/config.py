"""
Application Configuration

Loads environment variables and provides typed settings
for the application. Uses python-dotenv to load from .env file.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load .env file from the repository root
_env_path = Path(__file__).resolve().parent.parent.parent / ".env"
load_dotenv(dotenv_path=_env_path)

# --- App Settings ---
PROJECT_NAME = "Gift Planner"

# --- Supabase ---
SUPABASE_URL: str = os.getenv("SUPABASE_URL", "")
SUPABASE_ANON_KEY: str = os.getenv("SUPABASE_ANON_KEY", "")
SUPABASE_SERVICE_ROLE_KEY: str = os.getenv("SUPABASE_SERVICE_ROLE_KEY", "")

# --- Anthropic (gift suggestions) ---
ANTHROPIC_API_KEY: str = os.getenv("ANTHROPIC_API_KEY", "")
ANTHROPIC_MODEL: str = os.getenv("ANTHROPIC_MODEL", "claude-sonnet-4-20250514")
SUGGESTION_WEB_SEARCH: bool = os.getenv("SUGGESTION_WEB_SEARCH", "true").lower() in (
    "1", "true", "yes", "on",
)

# --- Gift planning defaults ---
DEFAULT_GIFT_BUDGET: float = float(os.getenv("DEFAULT_GIFT_BUDGET", "50"))
BULK_PURCHASE_STAGGER_MS: int = int(os.getenv("BULK_PURCHASE_STAGGER_MS", "200"))

GIFT_STATUSES: tuple[str, ...] = ("idea", "planned", "purchased", "delivered", "given")


def parse_status_list(raw: str, setting_name: str) -> frozenset[str]:
    """
    Parse a comma-separated list of gift statuses.

    Raises ValueError if any entry is not a known gift status, so a typo
    in the environment fails loudly at startup instead of silently
    producing zero spend.
    """
    statuses = frozenset(s.strip().lower() for s in raw.split(",") if s.strip())
    unknown = statuses - set(GIFT_STATUSES)
    if unknown:
        raise ValueError(
            f"{setting_name} contains unknown gift statuses: {', '.join(sorted(unknown))}. "
            f"Valid statuses: {', '.join(GIFT_STATUSES)}"
        )
    return statuses


# Which statuses count as "spent" differs per report. The per-contact
# spending view counts purchased/given, the dashboard also counts delivered.
CONTACT_SPEND_STATUSES: frozenset[str] = parse_status_list(
    os.getenv("CONTACT_SPEND_STATUSES", "purchased,given"),
    "CONTACT_SPEND_STATUSES",
)
DASHBOARD_SPEND_STATUSES: frozenset[str] = parse_status_list(
    os.getenv("DASHBOARD_SPEND_STATUSES", "purchased,delivered,given"),
    "DASHBOARD_SPEND_STATUSES",
)
ANALYTICS_SPEND_STATUSES: frozenset[str] = parse_status_list(
    os.getenv("ANALYTICS_SPEND_STATUSES", "purchased,given"),
    "ANALYTICS_SPEND_STATUSES",
)


def validate_supabase_config() -> bool:
    """Check that all required Supabase credentials are present and non-empty."""
    missing = []
    if not SUPABASE_URL:
        missing.append("SUPABASE_URL")
    if not SUPABASE_ANON_KEY:
        missing.append("SUPABASE_ANON_KEY")
    if not SUPABASE_SERVICE_ROLE_KEY:
        missing.append("SUPABASE_SERVICE_ROLE_KEY")
    if missing:
        raise EnvironmentError(
            f"Missing required Supabase environment variables: {', '.join(missing)}. "
            f"Please fill in your .env file at: {_env_path}"
        )
    return True


def is_anthropic_configured() -> bool:
    """
    Check if the Anthropic API key is available without raising exceptions.

    Suggestion generation is disabled (returns zero options) when this
    is False, but the rest of the app still functions.
    """
    return bool(ANTHROPIC_API_KEY)
