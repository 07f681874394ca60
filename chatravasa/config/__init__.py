from typing import Optional

from .settings import settings, Settings
from .environments.development import DevelopmentSettings


def load_settings(environment: Optional[str] = None) -> Settings:
    """Settings for a named environment; anything but development gets the base settings"""
    if (environment or "").lower() in ("dev", "development"):
        return DevelopmentSettings()
    return Settings()


__all__ = ["settings", "Settings", "DevelopmentSettings", "load_settings"]
