# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Configuration for the telemetry collector.

Values come from (lowest to highest priority):
- dataclass defaults
- an optional YAML file (same keys as the dataclass fields)
- GitHub Actions inputs (`INPUT_<NAME>` env vars) and `WORKFLOW_TELEMETRY_*` env vars

The resulting TelemetryConfig is passed explicitly into every component; nothing
in the package reads process-wide settings after construction.
"""

from __future__ import annotations

import logging
import os
import shlex
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml

from .errors import ConfigError

logger = logging.getLogger(__name__)

BLACK = "#000000"
WHITE = "#FFFFFF"

DEFAULT_STEP_NAME = "Run test"
DEFAULT_CHART_API_URL = "https://api.globadge.com/v1/chartgen"


def axis_color(theme: str) -> str:
    """Map the `theme` input to the chart axis color (light -> black, dark -> white)."""
    if theme == "light":
        return BLACK
    if theme == "dark":
        return WHITE
    logger.warning("Invalid theme: %s", theme)
    return BLACK


def _parse_bool(value: Any, *, name: str) -> bool:
    if isinstance(value, bool):
        return value
    s = str(value).strip().lower()
    if s in ("true", "1", "yes", "on"):
        return True
    if s in ("false", "0", "no", "off"):
        return False
    raise ConfigError(f"{name}: expected a boolean, got {value!r}")


def _default_state_path() -> Path:
    runner_temp = os.environ.get("RUNNER_TEMP")
    base = Path(runner_temp) if runner_temp else Path.home() / ".cache" / "workflow-telemetry"
    return base / "workflow-telemetry.state.json"


@dataclass(frozen=True)
class TelemetryConfig:
    server_host: str = "localhost"
    server_port: int = 7777
    metric_frequency_s: Optional[int] = 5
    theme: str = "light"
    step_name: str = DEFAULT_STEP_NAME
    chart_api_url: str = DEFAULT_CHART_API_URL
    comment_on_pr: bool = True
    job_summary: bool = True
    github_token: Optional[str] = None
    sampler_command: Tuple[str, ...] = ()
    state_path: Path = field(default_factory=_default_state_path)
    request_timeout_s: float = 30.0
    # Passed through to the process tracer; unused by the report pipeline.
    proc_trace_min_duration: int = -1
    proc_trace_sys_enable: bool = False

    @property
    def stat_server_url(self) -> str:
        return f"http://{self.server_host}:{self.server_port}"

    @property
    def axis_color(self) -> str:
        return axis_color(self.theme)


# Action input name -> dataclass field
_INPUTS = {
    "metric_frequency": "metric_frequency_s",
    "theme": "theme",
    "step_name": "step_name",
    "comment_on_pr": "comment_on_pr",
    "job_summary": "job_summary",
    "github_token": "github_token",
    "proc_trace_min_duration": "proc_trace_min_duration",
    "proc_trace_sys_enable": "proc_trace_sys_enable",
}

# Plain env var -> dataclass field
_ENV = {
    "WORKFLOW_TELEMETRY_SERVER_HOST": "server_host",
    "WORKFLOW_TELEMETRY_SERVER_PORT": "server_port",
    "WORKFLOW_TELEMETRY_CHART_API_URL": "chart_api_url",
    "WORKFLOW_TELEMETRY_SAMPLER_CMD": "sampler_command",
    "WORKFLOW_TELEMETRY_STATE_PATH": "state_path",
    "WORKFLOW_TELEMETRY_TIMEOUT": "request_timeout_s",
    "GITHUB_TOKEN": "github_token",
}


def get_input(name: str, environ: Optional[Mapping[str, str]] = None) -> str:
    """Read a GitHub Actions input the same way the runner exposes it."""
    env = os.environ if environ is None else environ
    key = "INPUT_" + name.replace(" ", "_").upper()
    return (env.get(key) or "").strip()


def _coerce(name: str, value: Any) -> Any:
    """Convert a raw (string or YAML) value to the type of field `name`."""
    if name in ("comment_on_pr", "job_summary", "proc_trace_sys_enable"):
        return _parse_bool(value, name=name)
    if name in ("server_port", "proc_trace_min_duration"):
        try:
            return int(value)
        except (ValueError, TypeError):
            raise ConfigError(f"{name}: expected an integer, got {value!r}")
    if name == "metric_frequency_s":
        try:
            return int(str(value).strip())
        except (ValueError, TypeError):
            logger.warning("Ignoring non-integer metric_frequency: %r", value)
            return None
    if name == "request_timeout_s":
        try:
            return float(value)
        except (ValueError, TypeError):
            raise ConfigError(f"{name}: expected a number, got {value!r}")
    if name == "sampler_command":
        if isinstance(value, (list, tuple)):
            return tuple(str(v) for v in value)
        return tuple(shlex.split(str(value)))
    if name == "state_path":
        return Path(str(value)).expanduser()
    return str(value) if value is not None else None


def _load_yaml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"cannot read config file {path}: {e}")
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"config file {path} must contain a mapping, got {type(data).__name__}")
    known = {f.name for f in fields(TelemetryConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        logger.warning("Ignoring unknown config keys in %s: %s", path, ", ".join(unknown))
    return {k: v for k, v in data.items() if k in known}


def load_config(
    config_path: Optional[Path] = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
    **overrides: Any,
) -> TelemetryConfig:
    """Build a TelemetryConfig from defaults, YAML, env/action inputs and explicit overrides."""
    env = os.environ if environ is None else environ
    values: Dict[str, Any] = {}

    if config_path is not None:
        for k, v in _load_yaml(Path(config_path)).items():
            coerced = _coerce(k, v)
            if k == "metric_frequency_s" and coerced is None:
                continue
            values[k] = coerced

    for env_name, field_name in _ENV.items():
        raw = (env.get(env_name) or "").strip()
        if raw:
            values[field_name] = _coerce(field_name, raw)

    for input_name, field_name in _INPUTS.items():
        raw = get_input(input_name, env)
        if raw:
            coerced = _coerce(field_name, raw)
            if field_name == "metric_frequency_s" and coerced is None:
                continue
            values[field_name] = coerced

    for k, v in overrides.items():
        if v is not None:
            values[k] = v

    cfg = TelemetryConfig()
    return replace(cfg, **values) if values else cfg
