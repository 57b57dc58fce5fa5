"""
Configuration loading for the document assistant.

Sources are layered, later ones winning key by key:

1. Built-in defaults (the pydantic models)
2. ``configs/default.yaml`` under the search root
3. The environment file named by ``DOCU_ENV`` / ``ENVIRONMENT``
   (``configs/development.yaml`` for ``DOCU_ENV=development``)
4. The file passed with ``--config``
5. ``DOCU_<SECTION>__<FIELD>`` environment variables, e.g.
   ``DOCU_AUTO_CHAT__TIMEOUT_MINUTES=45``

A ``.env`` file in the search root is read into the environment first, so
its variables behave exactly like exported ones.
"""

import os
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple, Union

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from .models import DocuAssistantConfig
from ..utils.error_handling import ConfigurationError
from ..utils.logging import get_logger

ENV_PREFIX = "DOCU_"
ENV_SECTION_SEPARATOR = "__"
CONFIG_DIRECTORIES = ("configs", "config", "")

_TRUE_WORDS = frozenset({"true", "yes", "on"})
_FALSE_WORDS = frozenset({"false", "no", "off"})

logger = get_logger(__name__)


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    """Merge ``override`` into a copy of ``base``; nested dicts merge, everything else is replaced."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def coerce_env_value(raw: str) -> Any:
    """``on``/``off`` style words to bool, numerals to int/float, comma lists to lists."""
    lowered = raw.strip().lower()
    if lowered in _TRUE_WORDS:
        return True
    if lowered in _FALSE_WORDS:
        return False

    try:
        return float(raw) if "." in raw else int(raw)
    except ValueError:
        pass

    if "," in raw:
        return [item.strip() for item in raw.split(",")]
    return raw


def env_overrides(environ: Mapping[str, str]) -> Dict[str, Any]:
    """Nested override dict from ``DOCU_<SECTION>__<FIELD>`` variables.

    Variables without the section separator (``DOCU_ENV``) select files and
    are not configuration values.
    """
    overrides: Dict[str, Any] = {}
    for key, raw in environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        path = [part for part in key[len(ENV_PREFIX):].lower().split(ENV_SECTION_SEPARATOR) if part]
        if len(path) < 2:
            continue

        target = overrides
        for part in path[:-1]:
            target = target.setdefault(part, {})
        target[path[-1]] = coerce_env_value(raw)
    return overrides


def format_validation_error(error: ValidationError) -> str:
    lines = [
        f"  {' -> '.join(str(part) for part in err['loc'])}: {err['msg']} (got: {err.get('input', 'N/A')})"
        for err in error.errors()
    ]
    return "Validation errors:\n" + "\n".join(lines)


class ConfigLoader:
    """Loads and caches a ``DocuAssistantConfig`` from the layered sources."""

    def __init__(self, search_root: Optional[Union[str, Path]] = None):
        self._search_root = Path(search_root) if search_root else Path(".")
        self._config: Optional[DocuAssistantConfig] = None
        self._config_path: Optional[Path] = None

        env_file = self._search_root / ".env"
        if env_file.exists():
            load_dotenv(env_file)

    @property
    def config_path(self) -> Optional[Path]:
        """Path of the ``--config`` file used for the last load, if any."""
        return self._config_path

    def load_config(self, config_path: Optional[Union[str, Path]] = None) -> DocuAssistantConfig:
        """
        Merge every source and validate the result.

        Raises:
            ConfigurationError: If a file is missing or malformed, or validation fails
        """
        self._config_path = None
        data: Dict[str, Any] = {}
        try:
            for source, layer in self._layers(config_path):
                logger.debug(f"Applying configuration from {source}")
                data = deep_merge(data, layer)

            self._config = DocuAssistantConfig(**data)
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed: {format_validation_error(e)}") from e
        except ConfigurationError:
            raise
        except Exception as e:
            raise ConfigurationError(f"Failed to load configuration: {e}") from e

        return self._config

    def get_config(self) -> DocuAssistantConfig:
        if self._config is None:
            self._config = self.load_config()
        return self._config

    def reload_config(self, config_path: Optional[Union[str, Path]] = None) -> DocuAssistantConfig:
        self._config = None
        return self.load_config(config_path)

    def _layers(self, config_path: Optional[Union[str, Path]]) -> Iterator[Tuple[str, Dict[str, Any]]]:
        default_file = self.find_config("default")
        if default_file:
            yield str(default_file), self._read_yaml(default_file)

        env_name = os.getenv(f"{ENV_PREFIX}ENV") or os.getenv("ENVIRONMENT")
        env_file = self.find_config(env_name) if env_name else None
        if env_file and env_file != default_file:
            yield str(env_file), self._read_yaml(env_file)

        if config_path:
            cli_file = Path(config_path)
            if not cli_file.exists():
                raise ConfigurationError(f"Specified config file not found: {config_path}")
            self._config_path = cli_file
            yield str(cli_file), self._read_yaml(cli_file)

        overrides = env_overrides(os.environ)
        if overrides:
            yield f"{ENV_PREFIX}* environment variables", overrides

    def find_config(self, name: str) -> Optional[Path]:
        candidates: List[Path] = [
            self._search_root / directory / f"{name}.{extension}"
            for directory in CONFIG_DIRECTORIES
            for extension in ("yaml", "yml")
        ]
        return next((path for path in candidates if path.exists()), None)

    @staticmethod
    def _read_yaml(path: Path) -> Dict[str, Any]:
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Cannot read configuration file {path}: {e}") from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration file {path} must contain a YAML object (dictionary)")
        return data


_config_loader = ConfigLoader()


def load_config(config_path: Optional[Union[str, Path]] = None) -> DocuAssistantConfig:
    """Load configuration through the process-wide loader."""
    return _config_loader.load_config(config_path)


def get_config() -> DocuAssistantConfig:
    return _config_loader.get_config()


def reload_config(config_path: Optional[Union[str, Path]] = None) -> DocuAssistantConfig:
    return _config_loader.reload_config(config_path)


def validate_config_file(config_path: Union[str, Path]) -> Tuple[bool, Optional[str]]:
    """Check a configuration file without touching the process-wide loader.

    Returns:
        Tuple of (is_valid, error_message)
    """
    try:
        ConfigLoader().load_config(config_path)
    except ConfigurationError as e:
        return False, str(e)
    return True, None
