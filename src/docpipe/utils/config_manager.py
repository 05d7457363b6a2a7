"""
docpipe - Configuration Manager

JSON-based user settings: default OCR languages, render scales, page
setup for image conversion and recolor defaults. Missing keys are filled
in from the defaults, so a partial settings file is valid.
"""

import copy
import json
import logging
import os
from typing import Any, Final

from docpipe.config import CONFIG_FILE_PATH
from docpipe.constants import (
    DEFAULT_BRIGHTNESS_THRESHOLD,
    DEFAULT_JPEG_QUALITY,
    DEFAULT_OCR_SCALE,
    DEFAULT_PAGE_MARGIN_PT,
    DEFAULT_SVG_SCALE,
    DEFAULT_TEXT_COLOR_SCALE,
)

logger = logging.getLogger(__name__)

# Default configuration values
DEFAULT_CONFIG: Final[dict[str, Any]] = {
    "version": 1,
    "ocr": {
        "languages": ["eng"],
        "scale": DEFAULT_OCR_SCALE,
        "output_format": "text",
    },
    "text_color": {
        "mode": "dark",
        "threshold": DEFAULT_BRIGHTNESS_THRESHOLD,
        "scale": DEFAULT_TEXT_COLOR_SCALE,
    },
    "images": {
        "page_size": "A4",
        "orientation": "auto",
        "margin": DEFAULT_PAGE_MARGIN_PT,
        "quality": DEFAULT_JPEG_QUALITY,
        "svg_scale": DEFAULT_SVG_SCALE,
    },
    "output": {
        "directory": "",
        "overwrite_existing": False,
    },
}


def _fill_missing(target: dict, defaults: dict) -> None:
    """Copy keys present in *defaults* but absent from *target*, recursively."""
    for key, default in defaults.items():
        if key not in target:
            target[key] = copy.deepcopy(default)
        elif isinstance(default, dict) and isinstance(target[key], dict):
            _fill_missing(target[key], default)


class ConfigManager:
    """Settings file with dot-path access, e.g. ``get("ocr.languages")``."""

    def __init__(self, config_path: str | None = None) -> None:
        self.config_path = config_path or CONFIG_FILE_PATH
        self._config: dict[str, Any] = copy.deepcopy(DEFAULT_CONFIG)
        self.reload()

    def reload(self) -> None:
        """Re-read the settings file. A missing or unreadable file means defaults."""
        self._config = copy.deepcopy(DEFAULT_CONFIG)
        if not os.path.isfile(self.config_path):
            logger.debug("No settings file at %s, using defaults", self.config_path)
            return

        try:
            with open(self.config_path, encoding="utf-8") as f:
                stored = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error("Error loading config %s: %s", self.config_path, e)
            return
        if not isinstance(stored, dict):
            logger.error("Ignoring config %s: top level is not an object", self.config_path)
            return

        # A comma-separated language string is accepted for hand-edited files
        ocr = stored.get("ocr")
        if isinstance(ocr, dict) and isinstance(ocr.get("languages"), str):
            languages = ocr["languages"]
            ocr["languages"] = [c.strip() for c in languages.split(",") if c.strip()]

        _fill_missing(stored, DEFAULT_CONFIG)
        self._config = stored
        logger.debug("Configuration loaded from %s", self.config_path)

    def save(self) -> bool:
        """Write the settings file, creating its directory. Returns success."""
        directory = os.path.dirname(self.config_path)
        try:
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(self.config_path, "w", encoding="utf-8") as f:
                json.dump(self._config, f, indent=2, ensure_ascii=False)
        except OSError as e:
            logger.error("Error saving config %s: %s", self.config_path, e)
            return False
        logger.debug("Configuration saved to %s", self.config_path)
        return True

    def get(self, key_path: str, default: Any = None) -> Any:
        """Look up a dot-separated path such as ``"images.margin"``.

        Args:
            key_path: Section and key names joined by dots
            default: Returned when any part of the path is missing

        Returns:
            The stored value or *default*
        """
        node: Any = self._config
        for part in key_path.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def set(self, key_path: str, value: Any, save_immediately: bool = True) -> None:
        """Store *value* at a dot-separated path, creating sections as needed.

        Args:
            key_path: Section and key names joined by dots
            value: JSON-serializable value
            save_immediately: Write the file right away
        """
        *sections, leaf = key_path.split(".")
        node = self._config
        for part in sections:
            child = node.get(part)
            if not isinstance(child, dict):
                child = node[part] = {}
            node = child
        node[leaf] = value

        if save_immediately:
            self.save()


# Singleton instance for global access
_config_manager: ConfigManager | None = None


def get_config_manager() -> ConfigManager:
    """Get the global configuration manager instance."""
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager()
    return _config_manager
