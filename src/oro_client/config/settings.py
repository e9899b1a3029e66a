"""
Settings master configuration and global helpers.

Sources, in the order an application usually layers them:

* ``Settings()`` defaults
* ``Settings.from_file()`` for YAML / TOML, checked against ``CONFIG_SCHEMA``
* ``Settings.from_env()`` for ``ORO_*`` variables (``load_env`` reads a ``.env`` first)
"""

from __future__ import annotations

import dataclasses
import os
import tomllib
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from dotenv import find_dotenv, load_dotenv

from ..config_schema import CONFIG_SCHEMA
from ..errors import InvalidConfigError
from .cache import CacheConfig, FSCacheConfig
from .logging import LoggingConfig
from .registry import RegistryConfig


def _flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


# env suffix -> (section, attribute, parser)
_ENV_FIELDS: dict[str, tuple[str, str, Callable[[str], Any]]] = {
    "REGISTRY": ("registry", "registry", str),
    "TOKEN": ("registry", "token", str),
    "USER_AGENT": ("registry", "user_agent", str),
    "TIMEOUT": ("registry", "timeout", float),
    "FETCH_RETRIES": ("registry", "fetch_retries", int),
    "MAX_CONCURRENCY": ("registry", "max_concurrency", int),
    "PROXY": ("registry", "proxy", _flag),
    "PROXY_URL": ("registry", "proxy_url", str),
    "NO_PROXY": ("registry", "no_proxy_domain", str),
    "CACHE_BACKEND": ("cache", "backend", str.lower),
    "CACHE_MODE": ("cache", "mode", str.lower),
    "LOG_LEVEL": ("logging", "level", str.upper),
    "LOG_FORMAT": ("logging", "format", str.lower),
    "LOG_FILE": ("logging", "log_file", Path),
}


@dataclass
class Settings:
    """Registry, cache and logging configuration for one client."""

    registry: RegistryConfig = field(default_factory=RegistryConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_env(cls, prefix: str = "ORO_") -> Settings:
        """
        Load settings from environment variables.

        ``{prefix}CACHE_DIR`` switches the cache to the filesystem backend;
        ``{prefix}CACHE_BACKEND=fs`` alone uses ``FSCacheConfig``'s default directory.

        Example:
            ORO_REGISTRY=https://registry.example.com/
            ORO_FETCH_RETRIES=4
            ORO_CACHE_DIR=~/.cache/oro

        Raises:
            InvalidConfigError: If a variable cannot be parsed or fails validation.
        """
        settings = cls()

        if cache_dir := os.getenv(f"{prefix}CACHE_DIR"):
            settings.cache = FSCacheConfig(cache_dir=Path(cache_dir).expanduser())

        for suffix, (section, attr, parse) in _ENV_FIELDS.items():
            raw = os.getenv(f"{prefix}{suffix}")
            if not raw:
                continue
            if suffix == "CACHE_BACKEND" and isinstance(settings.cache, FSCacheConfig):
                continue
            try:
                value = parse(raw)
            except ValueError as exc:
                raise InvalidConfigError(f"Invalid value for {prefix}{suffix}: {raw!r}", cause=exc) from exc
            setattr(getattr(settings, section), attr, value)

        settings.validate()
        if settings.cache.backend == "fs" and not isinstance(settings.cache, FSCacheConfig):
            settings.cache = FSCacheConfig(
                enabled=settings.cache.enabled,
                default_collection=settings.cache.default_collection,
                mode=settings.cache.mode,
            )
        return settings

    @classmethod
    def from_file(cls, path: str | Path) -> Settings:
        """
        Load settings from ``.yaml`` / ``.yml`` or ``.toml``.

        Raises:
            FileNotFoundError: If ``path`` does not exist.
            InvalidConfigError: On an unknown suffix or a schema violation.
        """
        path = Path(path)

        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        suffix = path.suffix.lower()

        if suffix in (".yaml", ".yml"):
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        elif suffix == ".toml":
            with open(path, "rb") as f:
                data = tomllib.load(f)
        else:
            raise InvalidConfigError(f"Unsupported config file format: {suffix}")

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> Settings:
        try:
            jsonschema.validate(instance=data, schema=CONFIG_SCHEMA)
        except jsonschema.ValidationError as e:
            raise InvalidConfigError(f"Configuration validation failed: {e.message}", cause=e) from e

        try:
            registry = RegistryConfig(**data.get("registry", {}))

            cache_data = dict(data.get("cache", {}))
            backend = cache_data.get("backend")
            if backend == "fs" or (backend is None and "cache_dir" in cache_data):
                cache_data.pop("backend", None)
                cache: CacheConfig = FSCacheConfig(**cache_data)
            else:
                cache = CacheConfig(**cache_data)

            logging_config = LoggingConfig(**data.get("logging", {}))
        except (TypeError, ValueError) as e:
            raise InvalidConfigError(f"Configuration validation failed: {e}", cause=e) from e

        return cls(registry=registry, cache=cache, logging=logging_config)

    def validate(self) -> None:
        """Re-run section validation after in-place edits."""
        try:
            for section in (self.registry, self.cache, self.logging):
                section.__post_init__()
        except ValueError as e:
            raise InvalidConfigError(str(e), cause=e) from e

    def to_dict(self) -> dict[str, Any]:
        """Plain dict of every section, paths as strings."""

        def convert(obj):
            if dataclasses.is_dataclass(obj):
                return convert(dataclasses.asdict(obj))
            elif isinstance(obj, dict):
                return {k: convert(v) for k, v in obj.items()}
            elif isinstance(obj, Path):
                return str(obj)
            return obj

        return convert(self)


_global_settings: Settings | None = None


def get_settings() -> Settings:
    """Process-wide settings, read from the environment on first use."""
    global _global_settings
    if _global_settings is None:
        _global_settings = Settings.from_env()
    return _global_settings


def configure(settings: Settings | None = None, **sections: Any) -> Settings:
    """
    Replace the process-wide settings, or swap individual sections.

    Example:
        configure(registry=RegistryConfig(registry="https://npm.example.com/"))
    """
    global _global_settings

    if settings is not None:
        _global_settings = settings
    elif _global_settings is None:
        _global_settings = Settings.from_env()

    for name, value in sections.items():
        if name not in ("registry", "cache", "logging"):
            raise TypeError(f"Unknown settings section: {name}")
        setattr(_global_settings, name, value)

    return _global_settings


def load_env(path: str | None = None, *, override: bool = False) -> bool:
    """Load a ``.env`` file (found upwards from the cwd when ``path`` is None). Returns whether one was loaded."""
    env_path = path or find_dotenv(usecwd=True)
    if not env_path:
        return False
    return load_dotenv(env_path, override=override)


__all__ = ["Settings", "get_settings", "configure", "load_env"]
