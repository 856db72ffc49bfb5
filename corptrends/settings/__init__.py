"""Environment-driven application settings."""

from corptrends.settings.app import AppSettings, get_settings


__all__ = ["AppSettings", "get_settings"]
