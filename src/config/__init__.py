"""
Application configuration using Pydantic settings.

Configuration comes from environment variables with sensible defaults.
"""

from .settings import ProfileSettings, Settings, get_settings

__all__ = ["ProfileSettings", "Settings", "get_settings"]
