"""Configuration module centralizing environment access.

Lightweight Settings object instead of ad-hoc os.getenv calls.
"""
import os
from typing import List, Optional


def _csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings:
    def __init__(self) -> None:
        # Core
        inferred_testing = (
            os.getenv("PYTEST_CURRENT_TEST")
            or os.getenv("PYTEST_RUNNING") == "1"
            or os.getenv("ENVIRONMENT") == "testing"
            or os.getenv("TESTING") == "1"
        )
        self.environment: str = "testing" if inferred_testing else os.getenv("ENVIRONMENT", "development")
        self.port: int = int(os.getenv("PORT", "8000"))

        # Database
        self.database_url: Optional[str] = os.getenv("DATABASE_URL") or "sqlite:///./app.db"

        # Calendar defaults
        self.working_hours_start: int = int(os.getenv("WORKING_HOURS_START", "9"))
        self.working_hours_end: int = int(os.getenv("WORKING_HOURS_END", "17"))
        self.slot_step_minutes: int = int(os.getenv("SLOT_STEP_MINUTES", "30"))
        self.default_slot_duration: int = int(os.getenv("DEFAULT_SLOT_DURATION", "60"))

        # Authorization
        self.elevated_roles: List[str] = _csv(os.getenv("ELEVATED_ROLES", "admin"))
        self.elevated_departments: List[str] = _csv(os.getenv("ELEVATED_DEPARTMENTS", "Operations"))

        # Notifications
        self.notify_webhook_url: Optional[str] = os.getenv("NOTIFY_WEBHOOK_URL") or None
        self.notify_webhook_timeout: float = float(os.getenv("NOTIFY_WEBHOOK_TIMEOUT", "10"))

        # Admin protection
        self.admin_api_key: Optional[str] = os.getenv("ADMIN_API_KEY")


_SETTINGS_CACHE: Optional[Settings] = None


def get_settings(refresh: bool = False) -> Settings:
    """Return a (possibly cached) Settings instance.

    Pass refresh=True (or set env FORCE_SETTINGS_REFRESH=1) in tests after
    modifying environment variables to force re-evaluation.
    """
    global _SETTINGS_CACHE
    if refresh or os.getenv("FORCE_SETTINGS_REFRESH") == "1" or _SETTINGS_CACHE is None:
        _SETTINGS_CACHE = Settings()
    elif (
        (os.getenv("ENVIRONMENT") == "testing" or os.getenv("PYTEST_CURRENT_TEST"))
        and _SETTINGS_CACHE.environment != "testing"
    ):
        # Test env indicators appeared after the first read
        _SETTINGS_CACHE = Settings()
    return _SETTINGS_CACHE
