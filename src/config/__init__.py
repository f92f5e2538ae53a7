"""
Configuration package for wellington

Provides application settings via environment variables using pydantic-settings.
"""

from .settings import appsettings, AppSettings, OUTPUT_STYLES

__all__ = ["appsettings", "AppSettings", "OUTPUT_STYLES"]
