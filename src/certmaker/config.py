"""Configuration loading utilities for certmaker."""
from __future__ import annotations

import re
from datetime import timedelta
from pathlib import Path
from typing import Iterable, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .paths import runtime_config_dir

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|h|m|s)")
_DURATION_UNITS = {"h": 3600.0, "m": 60.0, "s": 1.0, "ms": 0.001}


def parse_duration(value: str) -> timedelta:
    """Parse a Go-style duration such as ``87600h`` or ``1h30m``."""

    text = value.strip()
    if not text:
        raise ValueError("duration must not be empty")
    position = 0
    seconds = 0.0
    for match in _DURATION_PART.finditer(text):
        if match.start() != position:
            break
        seconds += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        position = match.end()
    if position != len(text):
        raise ValueError(f"invalid duration: {value!r} (expected e.g. 8760h)")
    if seconds <= 0:
        raise ValueError(f"duration must be positive: {value!r}")
    return timedelta(seconds=seconds)


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO", description="Logging verbosity level")

    def normalized_level(self) -> str:
        return self.level.upper()


class LifetimeConfig(BaseModel):
    root: str = Field(default="87600h", description="Root certificate lifetime")
    intermediate: str = Field(default="43800h", description="Intermediate certificate lifetime")
    leaf: str = Field(default="8760h", description="Leaf certificate lifetime")

    @field_validator("root", "intermediate", "leaf")
    @classmethod
    def _validate_duration(cls, value: str) -> str:
        parse_duration(value)
        return value


class OutputConfig(BaseModel):
    root_cert: Path = Field(default=Path("root.pem"))
    intermediate_cert: Path = Field(default=Path("intermediate.pem"))
    leaf_cert: Path = Field(default=Path("leaf.pem"))


class AppConfig(BaseModel):
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    lifetimes: LifetimeConfig = Field(default_factory=LifetimeConfig)
    outputs: OutputConfig = Field(default_factory=OutputConfig)


DEFAULT_CONFIG = AppConfig()


def config_search_paths(explicit: Optional[Path] = None) -> Iterable[Path]:
    if explicit:
        yield explicit
    yield Path.cwd() / ".certmaker" / "config.yaml"
    yield runtime_config_dir() / "config.yaml"


def load_config(path: Optional[Path] = None) -> AppConfig:
    if path is not None and not path.is_file():
        raise ValueError(f"Configuration file not found: {path}")
    for candidate in config_search_paths(path):
        if candidate.is_file():
            with candidate.open("r", encoding="utf-8") as handle:
                data = yaml.safe_load(handle) or {}
            try:
                return AppConfig.model_validate(data)
            except ValidationError as exc:
                raise ValueError(f"Invalid configuration in {candidate}: {exc}") from exc
    return DEFAULT_CONFIG.model_copy(deep=True)


def dump_default_config(target: Path) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("w", encoding="utf-8") as handle:
        yaml.safe_dump(DEFAULT_CONFIG.model_dump(mode="json"), handle, sort_keys=False)
