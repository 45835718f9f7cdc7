"""
User settings for pianoscribe.

Settings live in ~/.pianoscribe/settings.json. Values found in the file are
merged over the defaults category by category, so settings added in newer
versions always have a value.
"""
import copy
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS: Dict[str, Dict[str, Any]] = {
    "history": {
        "fusion_window": 1.0,  # seconds between edits that may merge into one undo step
    },
    "piano_roll": {
        "resize_handle_width": 8,  # pixels
        "axis_lock_modifier": "alt",
        "zoom_modifier": "ctrl",
        "pitch_label": "sharp",  # "none", "midi", "sharp" or "flat"
    },
}

MODIFIER_KEYS = ("ctrl", "shift", "alt", "meta")


def default_settings_path() -> Path:
    return Path.home() / ".pianoscribe" / "settings.json"


class Settings:
    """Settings file loaded once and kept in memory."""

    def __init__(self, path: Optional[Path] = None, values: Optional[Dict[str, Dict[str, Any]]] = None):
        """
        Args:
            path: Settings file (defaults to ~/.pianoscribe/settings.json)
            values: Use these values instead of reading the file
        """
        self.path = Path(path) if path is not None else default_settings_path()
        self.values = copy.deepcopy(DEFAULT_SETTINGS)
        if values is not None:
            self._merge(values)

    @classmethod
    def defaults(cls) -> "Settings":
        """In-memory defaults, never touching the file system."""
        return cls(values={})

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "Settings":
        """
        Load settings from file, creating it with defaults if missing.

        Unreadable files are logged and ignored (defaults are used).
        """
        settings = cls(path)
        if settings.path.exists():
            try:
                with open(settings.path, "r") as f:
                    loaded = json.load(f)
                if not isinstance(loaded, dict):
                    raise ValueError("top level must be an object")
                settings._merge(loaded)
            except (OSError, ValueError) as e:
                logger.warning("Failed to load settings from %s: %s", settings.path, e)
        else:
            try:
                settings.save()
                logger.info("Created new settings file with defaults at %s", settings.path)
            except OSError as e:
                logger.warning("Failed to save default settings: %s", e)
        return settings

    def _merge(self, loaded: Dict[str, Any]):
        for category, defaults in self.values.items():
            if isinstance(loaded.get(category), dict):
                defaults.update(loaded[category])

    def save(self):
        """Write settings to file."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            json.dump(self.values, f, indent=2)

    def get(self, category: str, key: str) -> Any:
        return self.values[category][key]

    def set(self, category: str, key: str, value: Any):
        """Update a setting value (in memory; call save() to persist)."""
        self.values.setdefault(category, {})[key] = value
        logger.debug("Updated %s.%s = %r", category, key, value)

    @property
    def fusion_window(self) -> float:
        return float(self.get("history", "fusion_window"))

    @property
    def resize_handle_width(self) -> float:
        return float(self.get("piano_roll", "resize_handle_width"))

    @property
    def axis_lock_modifier(self) -> str:
        return self._modifier("axis_lock_modifier")

    @property
    def zoom_modifier(self) -> str:
        return self._modifier("zoom_modifier")

    def _modifier(self, key: str) -> str:
        value = self.get("piano_roll", key)
        if value not in MODIFIER_KEYS:
            logger.warning("Invalid modifier %r for piano_roll.%s, using default", value, key)
            return DEFAULT_SETTINGS["piano_roll"][key]
        return value
