from __future__ import annotations

import os
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Optional

import yaml

from code_workbench.core.errors import ConfigError
from code_workbench.core.model import DIFFICULTIES, OperationKind


@dataclass(frozen=True)
class WorkbenchConfig:
    base_url: str = "http://localhost:8000"
    timeout_s: float = 30.0
    language: str = "python"
    difficulty: str = "medium"

    run_path: str = "/code/run"
    optimize_path: str = "/code/generate-optimized"
    generate_tests_path: str = "/code/generate-tests"
    run_tests_path: str = "/code/run-tests"
    models_path: str = "/api/models"

    def endpoint(self, kind: OperationKind) -> str:
        path = {
            "run": self.run_path,
            "optimize": self.optimize_path,
            "generate-tests": self.generate_tests_path,
            "run-tests": self.run_tests_path,
        }[kind]
        return self.url(path)

    def url(self, path: str) -> str:
        return self.base_url.rstrip("/") + "/" + path.lstrip("/")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


_FIELD_TYPES: dict[str, type] = {
    f.name: (float if f.name == "timeout_s" else str) for f in fields(WorkbenchConfig)
}


def env_key(name: str) -> str:
    """timeout_s -> WORKBENCH_TIMEOUT_S"""
    return f"WORKBENCH_{name.upper()}"


def _coerce(name: str, value: Any, source: str) -> Any:
    expected = _FIELD_TYPES[name]
    if expected is float:
        if isinstance(value, bool):
            raise ConfigError(
                code="E_CONFIG_INVALID", message=f"{name} must be a number", detail=source
            )
        try:
            out = float(value)
        except (TypeError, ValueError) as e:
            raise ConfigError(
                code="E_CONFIG_INVALID", message=f"{name} must be a number", detail=source
            ) from e
        if out <= 0:
            raise ConfigError(
                code="E_CONFIG_INVALID", message=f"{name} must be > 0", detail=source
            )
        return out

    if not isinstance(value, str) or not value.strip():
        raise ConfigError(
            code="E_CONFIG_INVALID", message=f"{name} must be a non-empty string", detail=source
        )
    value = value.strip()
    if name == "difficulty" and value not in DIFFICULTIES:
        raise ConfigError(
            code="E_CONFIG_INVALID",
            message=f"difficulty must be one of: {', '.join(DIFFICULTIES)}",
            detail=source,
        )
    return value


def load_config_file(path: str | Path) -> dict[str, Any]:
    """Load overrides from a YAML mapping of known keys.

    Format:
      base_url: http://localhost:8000
      timeout_s: 30
      difficulty: hard
    """
    p = Path(path)
    if not p.exists():
        raise ConfigError(code="E_CONFIG_NOT_FOUND", message="config file does not exist", detail=str(p))
    try:
        raw = yaml.safe_load(p.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError(code="E_CONFIG_PARSE", message=str(e), detail=str(p)) from e

    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(
            code="E_CONFIG_INVALID", message="config file must be a mapping", detail=str(p)
        )

    out: dict[str, Any] = {}
    for k, v in raw.items():
        if k not in _FIELD_TYPES:
            raise ConfigError(
                code="E_CONFIG_UNKNOWN_KEY", message=f"unknown config key: {k}", detail=str(p)
            )
        out[k] = _coerce(k, v, str(p))
    return out


def env_overrides() -> dict[str, Any]:
    out: dict[str, Any] = {}
    for name in _FIELD_TYPES:
        raw = (os.getenv(env_key(name), "") or "").strip()
        if raw:
            out[name] = _coerce(name, raw, env_key(name))
    return out


def resolve_config(
    config_file: str | None = None,
    overrides: Optional[dict[str, Any]] = None,
) -> WorkbenchConfig:
    """Build the effective config.

    Resolution order (highest first):
      1) explicit overrides (CLI options; None values are ignored)
      2) WORKBENCH_<KEY> environment variables
      3) config file
      4) defaults
    """
    merged: dict[str, Any] = {}
    if config_file:
        merged.update(load_config_file(config_file))
    merged.update(env_overrides())
    for k, v in (overrides or {}).items():
        if v is None:
            continue
        if k not in _FIELD_TYPES:
            raise ConfigError(code="E_CONFIG_UNKNOWN_KEY", message=f"unknown config key: {k}")
        merged[k] = _coerce(k, v, "option")
    return replace(WorkbenchConfig(), **merged)
