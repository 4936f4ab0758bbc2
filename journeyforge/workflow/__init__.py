"""Session processing workflow: settings, pipeline and reporting."""

from .config import QUALITY_PROFILES, Settings, get_settings

__all__ = ["QUALITY_PROFILES", "Settings", "get_settings"]
