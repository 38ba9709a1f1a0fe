"""Layered configuration loader for localeforge."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Literal, Mapping, Optional, Sequence

import yaml
from dotenv import dotenv_values
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigurationError

APP_NAME = "localeforge"
ENV_PREFIX = "LOCALEFORGE_"
PROJECT_FILE_NAME = "localeforge.yaml"


class LocaleForgeConfig(BaseModel):
    """Schema describing all supported configuration options."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    extensions: List[str] = Field(
        default_factory=lambda: [".tsx", ".jsx", ".ts", ".js"],
        description="File extensions to scan.",
    )
    ignore: List[str] = Field(
        default_factory=lambda: [
            "node_modules",
            ".git",
            ".cache",
            "dist",
            "build",
            ".next",
            "coverage",
        ],
        description="Directory names or globs excluded from scans.",
    )
    include_dirs: List[str] = Field(default_factory=list)
    translation_functions: List[str] = Field(
        default_factory=lambda: ["t", "translate", "formatMessage", "intl.formatMessage"],
        description="Call names whose first argument is an existing translation key.",
    )
    namespace: str = Field(default="ui", description="Fallback key namespace.")
    function_name: str = Field(default="t")
    import_source: Optional[str] = Field(default=None)
    import_kind: Literal["named", "default"] = Field(default="named")
    workers: int = Field(default=4, ge=1)
    max_failures: Optional[int] = Field(default=None, ge=1)

    @field_validator(
        "extensions",
        "ignore",
        "include_dirs",
        "translation_functions",
        mode="before",
    )
    @classmethod
    def _split_lists(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        return value

    @field_validator("import_kind", mode="before")
    @classmethod
    def _normalise_kind(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("import_source", "max_failures", mode="before")
    @classmethod
    def _blank_is_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value


@dataclass(frozen=True)
class LoadedConfig:
    """Validated settings plus the source that supplied each field."""

    settings: LocaleForgeConfig
    sources: Dict[str, str] = field(default_factory=dict)

    def source_of(self, name: str) -> str:
        return self.sources.get(name, "default")


def discover_config_files(app_dir: Path) -> List[Path]:
    """Return existing YAML files, lowest precedence first."""

    candidates = [
        Path.home() / ".config" / APP_NAME / "config.yaml",
        app_dir / PROJECT_FILE_NAME,
    ]
    return [path for path in candidates if path.is_file()]


def _load_yaml(path: Path) -> Dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as stream:
            parsed = yaml.safe_load(stream)
    except OSError as exc:
        raise ConfigurationError(f"Configuration file {path} could not be read: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Configuration file {path} is not valid YAML: {exc}") from exc
    if parsed is None:
        return {}
    if not isinstance(parsed, Mapping):
        raise ConfigurationError(
            f"Invalid configuration file {path}: expected a mapping at the root."
        )
    return {str(key).replace("-", "_"): value for key, value in parsed.items()}


def _env_layer(values: Mapping[str, Optional[str]], allowed: set[str]) -> Dict[str, str]:
    layer: Dict[str, str] = {}
    for key, value in sorted(values.items()):
        if value is None or not key.startswith(ENV_PREFIX):
            continue
        name = key[len(ENV_PREFIX):].lower()
        if name in allowed:
            layer[name] = value
    return layer


def _format_validation_errors(entries: Sequence[Mapping[str, Any]], sources: Mapping[str, str]) -> str:
    details: list[str] = []
    for entry in entries:
        path = entry.get("loc") or ()
        location = ".".join(str(part) for part in path if part not in {None, ""})
        message = str(entry.get("msg") or "Invalid value")
        root = str(path[0]) if path else ""
        origin = f" (source: {sources[root]})" if root in sources else ""
        prefix = f"{location}: " if location else ""
        details.append(f"- {prefix}{message}{origin}")
    return "Configuration validation errors detected:\n" + "\n".join(details)


@lru_cache(maxsize=8)
def _load_config(app_dir: Path) -> LoadedConfig:
    """Merge configuration layers once per directory and cache the result."""

    allowed = set(LocaleForgeConfig.model_fields)
    combined: Dict[str, Any] = {}
    sources: Dict[str, str] = {}

    def merge(layer: Mapping[str, Any], source: str) -> None:
        for key, value in layer.items():
            combined[key] = value
            sources[key] = source

    for path in discover_config_files(app_dir):
        merge(_load_yaml(path), f"file:{path}")

    dotenv_path = app_dir / ".env"
    if dotenv_path.exists():
        merge(_env_layer(dotenv_values(dotenv_path), allowed), "env:.env")

    merge(_env_layer(dict(os.environ), allowed), "env:process")

    try:
        settings = LocaleForgeConfig.model_validate(combined)
    except ValidationError as exc:
        raise ConfigurationError(_format_validation_errors(exc.errors(), sources)) from exc
    return LoadedConfig(settings=settings, sources=sources)


def get_config(app_dir: Optional[Path] = None) -> LoadedConfig:
    """Return the cached configuration for a directory (default: cwd)."""

    return _load_config((app_dir or Path.cwd()).resolve())


def get_settings(app_dir: Optional[Path] = None) -> LocaleForgeConfig:
    """Return the validated schema model for typed access."""

    return get_config(app_dir).settings


def clear_cache() -> None:
    _load_config.cache_clear()
