"""Settings persistence for the downtime tracker."""

from lancer_downtime.storage.settings_store import SettingsStore

__all__ = ["SettingsStore"]
