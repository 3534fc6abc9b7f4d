# src/unify_build/managers/config_manager.py
import copy
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

from dom_cascade.model import CascadeSettings
from unify_build.utils.path_utils import PathUtils

logger = logging.getLogger(__name__)

_TRUE_STRINGS = ("true", "1", "yes", "on")
_FALSE_STRINGS = ("false", "0", "no", "off")


def _deep_merge(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _deep_merge(base[key], value)
        else:
            base[key] = copy.deepcopy(value)
    return base


class ConfigManager:
    """
    A singleton class to manage the build configuration.

    The packaged settings.json provides the defaults; an optional project
    file (e.g. `unify.config.json` in the site root) is layered on top of it.
    Values can also be changed in memory with `set_nested`.
    """
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(ConfigManager, cls).__new__(cls)
            cls._instance._initialize()
        return cls._instance

    def _initialize(self):
        self._config: Dict[str, Any] = {}
        self._project_file: Optional[Path] = None
        self.reset()
        logger.debug("ConfigManager initialized.")

    def get_all(self) -> Dict[str, Any]:
        """Returns the entire current configuration dictionary."""
        return self._config

    def get_nested(self, key_path: str, default: Optional[Any] = None) -> Any:
        """
        Looks up a dotted key such as 'dom_cascade.ordered_fill.max_depth'.
        Missing keys, None values and non-dict intermediates give `default`.
        """
        node: Any = self._config
        for part in key_path.split('.'):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return default if node is None else node

    def set_nested(self, key_path: str, value: Any) -> bool:
        """
        Sets a dotted key in memory, casting strings to the type of the value
        being replaced (e.g. 'build.concurrency', '4'). Returns False when an
        intermediate key holds a non-dict value.
        """
        *parents, leaf = key_path.split('.')
        node = self._config
        for part in parents:
            node = node.setdefault(part, {})
            if not isinstance(node, dict):
                logger.error("Cannot set %s: '%s' is not a section.", key_path, part)
                return False

        if node.get(leaf) is not None:
            value = self._cast(key_path, node[leaf], value)

        node[leaf] = value
        logger.info("Configuration updated: %s = %s", key_path, value)
        return True

    @staticmethod
    def _cast(key_path: str, current: Any, value: Any) -> Any:
        if isinstance(current, bool):
            if not isinstance(value, str):
                return bool(value)
            lowered = value.strip().lower()
            if lowered in _TRUE_STRINGS:
                return True
            if lowered in _FALSE_STRINGS:
                return False
            logger.warning("'%s' is not a boolean for %s; stored as given.", value, key_path)
            return value
        if isinstance(current, (dict, list)):
            return value
        try:
            return type(current)(value)
        except (ValueError, TypeError):
            logger.warning("'%s' is not a valid %s for %s; stored as given.", value, type(current).__name__, key_path)
            return value

    def load_project_config(self, path: Union[str, Path]) -> bool:
        """
        Layers a project JSON file over the packaged defaults. The file is
        remembered, so `reset()` re-applies it. Returns False if it cannot be
        read or is not a JSON object; the current configuration is kept.
        """
        overrides = self._read_json(Path(path))
        if not isinstance(overrides, dict):
            logger.error("Project configuration %s ignored: expected a JSON object.", path)
            return False

        self._project_file = Path(path)
        _deep_merge(self._config, overrides)
        logger.info("Project configuration loaded from %s", path)
        return True

    def cascade_settings(self) -> CascadeSettings:
        """Validated snapshot of the `dom_cascade` block."""
        return CascadeSettings.from_config(self)

    def reset(self, keep_project: bool = True):
        """
        Reloads settings.json and, unless `keep_project` is False, the
        project file loaded earlier.
        """
        settings_file = PathUtils.get_settings_file()
        if not settings_file.exists():
            logger.warning("settings.json not found at %s. Using empty config.", settings_file)
            defaults = {}
        else:
            defaults = self._read_json(settings_file)
            if not isinstance(defaults, dict):
                defaults = {}
        self._config = defaults

        if not keep_project:
            self._project_file = None
        elif self._project_file is not None:
            overrides = self._read_json(self._project_file)
            if isinstance(overrides, dict):
                _deep_merge(self._config, overrides)
        logger.debug("Configuration has been (re)loaded.")

    @staticmethod
    def _read_json(path: Path) -> Any:
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error("Failed to load %s: %s", path, e, exc_info=True)
            return None


# The global singleton instance shared by the build.
config_manager = ConfigManager()
