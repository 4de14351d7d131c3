"""
Settings shortcut

Usage:
    from app.core.config import settings
"""
from app.core.settings import Settings, get_settings

settings = get_settings()

__all__ = ["Settings", "get_settings", "settings"]
