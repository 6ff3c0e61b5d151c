"""
Configuration loading for Heron servers.

Sources are merged with precedence (later overrides earlier):

    config files (YAML / JSON)  <  .env file  <  environment  <  overrides

Environment keys use the ``HERON_`` prefix: ``HERON_DOCS_ENABLED=false``.
"""

from typing import Any, Dict, List, Optional, Type, Union, get_args, get_origin
from dataclasses import asdict, dataclass, fields, MISSING
from pathlib import Path
import json
import os
import types

import yaml
from dotenv import dotenv_values


class ConfigError(Exception):
    """Raised when configuration validation fails."""
    pass


_FILE_READERS = {
    ".json": json.load,
    ".yaml": yaml.safe_load,
    ".yml": yaml.safe_load,
}

_TRUTHY = frozenset({"true", "yes"})
_FALSY = frozenset({"false", "no"})


@dataclass
class HeronConfig:
    """Settings read by ``HeronServer`` and the CLI."""
    title: str = "Heron API"
    openapi_path: str = "/openapi.json"
    docs_path: str = "/docs"
    docs_enabled: bool = True
    access_log: bool = True
    log_level: str = "info"
    log_format: str = "dev"
    slow_threshold_ms: float = 1000.0
    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class ConfigLoader:
    """
    Loads and merges configuration from multiple sources.
    """

    def __init__(self, env_prefix: str = "HERON_"):
        self.env_prefix = env_prefix
        self.config_data: Dict[str, Any] = {}

    @classmethod
    def load(
        cls,
        paths: Optional[List[str]] = None,
        env_prefix: str = "HERON_",
        env_file: Optional[str] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> "ConfigLoader":
        """
        Load configuration from every source.

        Args:
            paths: Config files (``.yaml``/``.yml``/``.json``), in order
            env_prefix: Prefix for environment variables
            env_file: Path to a .env file
            overrides: Manual overrides (highest precedence)

        Raises:
            ConfigError: On a missing or unreadable config file
        """
        loader = cls(env_prefix=env_prefix)

        for path in paths or ():
            loader._load_file(Path(path))

        if env_file:
            loader._load_env_file(env_file)

        loader._load_from_env()

        if overrides:
            loader._merge_dict(loader.config_data, overrides)

        return loader

    def _load_file(self, path: Path):
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")
        reader = _FILE_READERS.get(path.suffix)
        if reader is None:
            raise ConfigError(f"Unsupported config file type: {path}")
        with open(path) as f:
            data = reader(f)
        if data:
            self._merge_dict(self.config_data, data)

    def _load_env_file(self, path: str):
        # A missing .env file is not an error
        if Path(path).exists():
            self._absorb_env(dotenv_values(path))

    def _load_from_env(self):
        self._absorb_env(os.environ)

    def _absorb_env(self, variables):
        """HERON_DOCS_PATH=/d -> {"docs_path": "/d"}"""
        cut = len(self.env_prefix)
        for key, value in variables.items():
            if key.startswith(self.env_prefix) and value is not None:
                self.config_data[key[cut:].lower()] = self._parse_value(value)

    def _parse_value(self, value: str) -> Any:
        """Turn an environment string into a number, bool, JSON value or str."""
        for convert in (int, float):
            try:
                return convert(value)
            except ValueError:
                continue

        lowered = value.lower()
        if lowered in _TRUTHY:
            return True
        if lowered in _FALSY:
            return False

        if value[:1] in ("{", "["):
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                pass
        return value

    def _merge_dict(self, target: dict, source: dict):
        """Deep merge source into target."""
        for key, value in source.items():
            if key in target and isinstance(target[key], dict) and isinstance(value, dict):
                self._merge_dict(target[key], value)
            else:
                target[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        return self.config_data.get(key, default)

    def to_dict(self) -> dict:
        return dict(self.config_data)

    # ── Typed config ────────────────────────────────────────────────────

    def config(self, config_class: Type = HeronConfig) -> Any:
        """
        Instantiate a config dataclass from the merged data.

        Raises:
            ConfigError: On unknown keys or mistyped values
        """
        known = {f.name for f in fields(config_class)}
        unknown = sorted(set(self.config_data) - known)
        if unknown:
            raise ConfigError(f"Unknown config key(s): {', '.join(unknown)}")
        return self._instantiate_dataclass(config_class, self.config_data)

    def _instantiate_dataclass(self, config_class: Type, data: dict):
        kwargs = {}
        for spec in fields(config_class):
            if spec.name not in data:
                if spec.default is MISSING and spec.default_factory is MISSING:
                    raise ConfigError(f"Required config field '{spec.name}' not provided")
                continue
            value = self._coerce(data[spec.name], spec.type)
            if not self._check_type(value, spec.type):
                expected = getattr(spec.type, "__name__", spec.type)
                raise ConfigError(
                    f"Config field '{spec.name}' expected {expected}, got {type(value).__name__}"
                )
            kwargs[spec.name] = value
        return config_class(**kwargs)

    def _coerce(self, value: Any, expected_type: Type) -> Any:
        # Environment parsing turns "8080" into an int and "1.5" into a float
        if expected_type is bool and value in (0, 1) and not isinstance(value, bool):
            return bool(value)
        if expected_type is float and isinstance(value, int) and not isinstance(value, bool):
            return float(value)
        if expected_type is str and isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    def _check_type(self, value: Any, expected_type: Type) -> bool:
        """Basic type checking."""
        origin = get_origin(expected_type)
        if origin is Union or origin is types.UnionType:
            if value is None:
                return type(None) in get_args(expected_type)
            return any(
                self._check_type(value, arg)
                for arg in get_args(expected_type) if arg is not type(None)
            )
        if origin:
            return isinstance(value, origin)

        if expected_type is int and isinstance(value, bool):
            return False
        try:
            return isinstance(value, expected_type)
        except TypeError:
            return True


def load_config(
    paths: Optional[List[str]] = None,
    env_file: Optional[str] = None,
    overrides: Optional[Dict[str, Any]] = None,
    env_prefix: str = "HERON_",
) -> HeronConfig:
    """Load and validate a ``HeronConfig``."""
    return ConfigLoader.load(
        paths=paths,
        env_prefix=env_prefix,
        env_file=env_file,
        overrides=overrides,
    ).config()


__all__ = [
    "ConfigError",
    "ConfigLoader",
    "HeronConfig",
    "load_config",
]
