"""
Key-value settings store.

Holds world-level settings (active action sets, custom action sets,
markers) and per-character downtime data. Values must be JSON-compatible;
reads return deep copies so callers cannot mutate stored state in place.
"""

from pathlib import Path
from typing import Any, Optional
import copy
import json
import logging

logger = logging.getLogger(__name__)


class SettingsStore:
    """
    In-memory key-value store with JSON save/load.

    Keys can be registered with a default, mirroring how settings are
    declared up front; unregistered keys fall back to the caller's default.
    """

    def __init__(self, filepath: Optional[Path | str] = None):
        self.filepath = Path(filepath) if filepath else None
        self._defaults: dict[str, Any] = {}
        self._values: dict[str, Any] = {}

    def register(self, key: str, default: Any) -> None:
        """Declare a setting and its default value."""
        self._defaults[key] = copy.deepcopy(default)

    def is_registered(self, key: str) -> bool:
        return key in self._defaults

    def get(self, key: str, default: Any = None) -> Any:
        if key in self._values:
            return copy.deepcopy(self._values[key])
        if key in self._defaults:
            return copy.deepcopy(self._defaults[key])
        return default

    def set(self, key: str, value: Any) -> None:
        self._values[key] = copy.deepcopy(value)

    def delete(self, key: str) -> bool:
        """Remove a stored value; registered keys fall back to their default."""
        if key in self._values:
            del self._values[key]
            return True
        return False

    def keys(self, prefix: str = "") -> list[str]:
        """Stored (not merely registered) keys, optionally filtered by prefix."""
        return sorted(k for k in self._values if k.startswith(prefix))

    def to_dict(self) -> dict[str, Any]:
        return copy.deepcopy(self._values)

    def save(self, filepath: Optional[Path | str] = None) -> Path:
        """
        Save stored values to a JSON file.

        Args:
            filepath: Target file (defaults to the store's own filepath)

        Returns:
            Path to the saved file
        """
        target = Path(filepath) if filepath else self.filepath
        if target is None:
            raise ValueError("No file to save settings to")

        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "w", encoding="utf-8") as f:
            json.dump(self._values, f, indent=2, ensure_ascii=False)

        logger.info(f"Saved settings to: {target}")
        return target

    def load(self, filepath: Optional[Path | str] = None) -> None:
        """Replace stored values with the contents of a JSON file."""
        source = Path(filepath) if filepath else self.filepath
        if source is None:
            raise ValueError("No file to load settings from")
        if not source.exists():
            raise FileNotFoundError(f"Settings file not found: {source}")

        with open(source, "r", encoding="utf-8") as f:
            self._values = json.load(f)

        logger.info(f"Loaded {len(self._values)} settings from: {source}")
