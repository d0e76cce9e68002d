"""
ConfigManager - YAML configuration for the overlay

Reads ~/.config/murmur/config.yaml, fills in missing keys from defaults,
and repairs invalid values so the overlay can always start.
"""

import yaml
from pathlib import Path
from typing import Any, Dict, Iterator, List, Tuple
import logging
import copy
import tempfile

from murmur.core.hotkey_capture import HotkeyError, parse_trigger

logger = logging.getLogger(__name__)


class ConfigManager:
    """
    Overlay configuration with dot-notation access.

    Invalid values found on load are logged and replaced by their
    defaults in memory; the file on disk is left as the user wrote it.

    Example:
        >>> config = ConfigManager("/tmp/murmur.yaml")
        >>> config.get('hotkey.trigger')
        'ctrl+shift+space'
    """

    DEFAULT_CONFIG = {
        'app': {
            'log_level': 'info',
        },
        'hotkey': {
            'trigger': 'ctrl+shift+space',
        },
        'overlay': {
            'enabled': True,
            'position': 'bottom-center',
            'margin': 24,
            'monitor': 0,
            'measure_tick_delta': False,
        },
        'trigger_server': {
            'enabled': True,
            'name': 'murmur',
        },
    }

    VALID_LOG_LEVELS = ['debug', 'info', 'warning', 'error']
    VALID_POSITIONS = ['bottom-center', 'top-center']

    BOOL_KEYS = (
        'overlay.enabled',
        'overlay.measure_tick_delta',
        'trigger_server.enabled',
    )
    COUNT_KEYS = ('overlay.margin', 'overlay.monitor')

    def __init__(self, config_path: str = "~/.config/murmur/config.yaml"):
        """
        Args:
            config_path: Path to YAML config file (created with defaults
                if missing)
        """
        self.config_path = Path(config_path).expanduser()
        self.config_path.parent.mkdir(parents=True, exist_ok=True)

        logger.info(f"Initializing config at {self.config_path}")

        self.config = self._load_config()

        problems = list(self._problems())
        if problems:
            logger.warning(
                f"Configuration validation errors: {[message for _, message in problems]}"
            )
            for key, _ in problems:
                default = self._default(key)
                logger.warning(f"Using default for {key}: {default!r}")
                self.set(key, default)

    def _load_config(self) -> Dict[str, Any]:
        if not self.config_path.exists():
            logger.info("Config file not found, writing defaults")
            config = copy.deepcopy(self.DEFAULT_CONFIG)
            self._write(config)
            return config

        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                loaded = yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.error(f"YAML parsing error, using defaults: {e}")
            return copy.deepcopy(self.DEFAULT_CONFIG)
        except OSError as e:
            logger.error(f"Cannot read config file, using defaults: {e}")
            return copy.deepcopy(self.DEFAULT_CONFIG)

        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            logger.warning("Config root is not a mapping, using defaults")
            return copy.deepcopy(self.DEFAULT_CONFIG)

        return self._overlay_defaults(self.DEFAULT_CONFIG, loaded)

    @classmethod
    def _overlay_defaults(cls, defaults: Dict, user: Dict) -> Dict:
        """User values win; sections missing from the file come from defaults."""
        merged = copy.deepcopy(defaults)
        for key, value in user.items():
            if isinstance(merged.get(key), dict):
                if isinstance(value, dict):
                    merged[key] = cls._overlay_defaults(merged[key], value)
                else:
                    logger.warning(f"Config section '{key}' is not a mapping, using defaults")
            else:
                merged[key] = value
        return merged

    def _write(self, config: Dict[str, Any]) -> None:
        # Temp file in the same directory, then rename over the target
        try:
            fd, temp_path = tempfile.mkstemp(
                dir=self.config_path.parent,
                prefix='.config_',
                suffix='.yaml.tmp'
            )
            with open(fd, 'w', encoding='utf-8') as f:
                yaml.safe_dump(config, f, default_flow_style=False, sort_keys=False)
            Path(temp_path).replace(self.config_path)
        except OSError as e:
            logger.error(f"Error saving config: {e}")
            raise RuntimeError(f"Failed to save configuration: {e}")

        logger.info(f"Config saved to {self.config_path}")

    def save(self) -> None:
        """Write the current configuration to disk atomically."""
        self._write(self.config)

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Look up a value by dot-separated path, e.g. 'overlay.margin'.

        Returns default when any part of the path is missing.
        """
        node = self.config
        for key in key_path.split('.'):
            if not isinstance(node, dict) or key not in node:
                return default
            node = node[key]
        return node

    def set(self, key_path: str, value: Any) -> None:
        """
        Store a value by dot-separated path, creating sections as needed.

        A path that runs through a non-mapping value is refused and logged.
        """
        *parents, leaf = key_path.split('.')
        node = self.config
        for key in parents:
            child = node.setdefault(key, {})
            if not isinstance(child, dict):
                logger.error(f"Cannot set '{key_path}': '{key}' is not a section")
                return
            node = child

        node[leaf] = value
        logger.debug(f"Set config '{key_path}' = {value!r}")

    def _default(self, key_path: str) -> Any:
        node: Any = self.DEFAULT_CONFIG
        for key in key_path.split('.'):
            node = node[key]
        return copy.deepcopy(node)

    def _problems(self) -> Iterator[Tuple[str, str]]:
        """Yield (key, message) for every invalid value."""
        trigger = self.get('hotkey.trigger')
        try:
            parse_trigger(trigger)
        except HotkeyError as e:
            yield 'hotkey.trigger', f"hotkey.trigger {trigger!r} is invalid: {e}"

        log_level = self.get('app.log_level')
        if log_level not in self.VALID_LOG_LEVELS:
            yield 'app.log_level', (
                f"app.log_level {log_level!r} not in {self.VALID_LOG_LEVELS}"
            )

        position = self.get('overlay.position')
        if position not in self.VALID_POSITIONS:
            yield 'overlay.position', (
                f"overlay.position {position!r} not in {self.VALID_POSITIONS}"
            )

        for key in self.COUNT_KEYS:
            value = self.get(key)
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                yield key, f"{key} must be a non-negative integer, got {value!r}"

        for key in self.BOOL_KEYS:
            value = self.get(key)
            if not isinstance(value, bool):
                yield key, f"{key} must be boolean, got {type(value).__name__}"

        name = self.get('trigger_server.name')
        if not isinstance(name, str) or not name:
            yield 'trigger_server.name', (
                f"trigger_server.name must be a non-empty string, got {name!r}"
            )

    def validate(self) -> List[str]:
        """
        Check every value.

        Returns:
            List of validation error messages (empty if valid)
        """
        return [message for _, message in self._problems()]
