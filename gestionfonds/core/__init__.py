"""Configuration partagée de l'application."""
from .settings import ReportSettings, SettingsError, load_settings, save_settings

__all__ = ["ReportSettings", "SettingsError", "load_settings", "save_settings"]
