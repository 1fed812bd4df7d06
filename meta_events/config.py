"""
Configuration management for meta_events.
Handles loading, validating, and providing access to runtime settings.

The wire-format constants (script function name, auto-tracking attribute
keys) are not configurable; only runtime knobs live here.
"""

import os
import json
import logging
from pathlib import Path
from typing import Dict, Any, Optional
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass
class TrackingConfig:
    """Tracker configuration settings."""
    default_version: Optional[int]
    warn_on_deprecated: bool
    debug: bool


@dataclass
class FrontendConfig:
    """Frontend script configuration settings."""
    js_namespace: str


class ConfigManager:
    """Manages meta_events configuration loading and access."""

    def __init__(self, config_file: str = "meta_events_config.json"):
        self.config_file = Path(config_file)
        self._config: Optional[Dict[str, Any]] = None
        self._load_config()

    def _load_config(self) -> None:
        """Load configuration from file and environment variables."""
        self._config = self._get_default_config()

        if self.config_file.exists():
            try:
                with open(self.config_file, 'r', encoding='utf-8') as f:
                    file_config = json.load(f)
                self._merge_config(file_config)
            except json.JSONDecodeError as exc:
                # Keep defaults if the file is unreadable
                logger.warning("Ignoring invalid config file %s: %s", self.config_file, exc)

        self._override_with_env()

    def _get_default_config(self) -> Dict[str, Any]:
        """Get default configuration."""
        return {
            "tracking": {
                "default_version": None,
                "warn_on_deprecated": True,
                "debug": False
            },
            "frontend": {
                "js_namespace": "MetaEvents"
            }
        }

    def _merge_config(self, file_config: Dict[str, Any]) -> None:
        """Merge file configuration with current config."""
        for section, values in file_config.items():
            if section in self._config and isinstance(values, dict):
                self._config[section].update(values)
            else:
                self._config[section] = values

    def _override_with_env(self) -> None:
        """Override configuration with environment variables."""
        if os.getenv("META_EVENTS_DEFAULT_VERSION"):
            self._config["tracking"]["default_version"] = int(os.getenv("META_EVENTS_DEFAULT_VERSION"))

        if os.getenv("META_EVENTS_WARN_ON_DEPRECATED"):
            self._config["tracking"]["warn_on_deprecated"] = os.getenv("META_EVENTS_WARN_ON_DEPRECATED").lower() == "true"

        if os.getenv("META_EVENTS_DEBUG"):
            self._config["tracking"]["debug"] = os.getenv("META_EVENTS_DEBUG").lower() == "true"

        if os.getenv("META_EVENTS_JS_NAMESPACE"):
            self._config["frontend"]["js_namespace"] = os.getenv("META_EVENTS_JS_NAMESPACE")

    def get_tracking_config(self) -> TrackingConfig:
        """Get tracker configuration."""
        tracking = self._config["tracking"]
        return TrackingConfig(
            default_version=tracking["default_version"],
            warn_on_deprecated=tracking["warn_on_deprecated"],
            debug=tracking["debug"]
        )

    def get_frontend_config(self) -> FrontendConfig:
        """Get frontend script configuration."""
        frontend = self._config["frontend"]
        return FrontendConfig(js_namespace=frontend["js_namespace"])

    def get_config(self) -> Dict[str, Any]:
        """Get raw configuration dictionary."""
        return json.loads(json.dumps(self._config))

    def reload(self) -> None:
        """Reload configuration from file."""
        self._load_config()
