# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Execution-window resolution.

A window is the inclusive [start, end] span (epoch ms) that samples are filtered
against. It comes from one of:
- a named step of a GitHub Actions job (`started_at` / `completed_at`)
- a measured command record (`startTime` + `duration`, both ms)
- the full sample stream (unbounded)

An unresolvable source is not an error for the caller: it yields an unresolved,
unbounded resolution with no duration, so charts still render from the full
stream and duration-gated sections are left out.

Example step (partial, from the GitHub jobs API):
    {
      "name": "Run test",
      "status": "completed",
      "started_at": "2025-12-24T09:06:10Z",
      "completed_at": "2025-12-24T09:06:13Z"
    }
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from .errors import WindowResolutionError
from .stat_types import UNBOUNDED, CompletedCommand, ExecutionWindow, ReportMode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WindowResolution:
    window: ExecutionWindow
    duration_s: Optional[int]
    resolved: bool
    mode: ReportMode

    @property
    def duration_known(self) -> bool:
        return self.duration_s is not None


UNRESOLVED = WindowResolution(window=UNBOUNDED, duration_s=None, resolved=False, mode=ReportMode.TIMESERIES)


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def parse_timestamp_ms(value: Any) -> float:
    """Parse a GitHub ISO-8601 timestamp (e.g. 2025-12-24T09:06:10Z) into epoch ms."""
    s = str(value or "").strip()
    if not s:
        raise WindowResolutionError("empty timestamp")
    try:
        dt = datetime.fromisoformat(s.replace("Z", "+00:00"))
    except ValueError as e:
        raise WindowResolutionError(f"invalid timestamp {s!r}: {e}")
    return dt.timestamp() * 1000.0


def _window_from_start_and_duration(start_ms: float, duration_ms: float) -> WindowResolution:
    duration_s = _round_half_up(duration_ms / 1000.0)
    window = ExecutionWindow(start=start_ms, end=start_ms + duration_s * 1000.0)
    return WindowResolution(window=window, duration_s=duration_s, resolved=True, mode=ReportMode.SUMMARY)


def find_step(job: Dict[str, Any], step_name: str) -> Optional[Dict[str, Any]]:
    """Return the first step named `step_name` that has both start and completion timestamps."""
    for step in (job or {}).get("steps") or []:
        if not isinstance(step, dict):
            continue
        if step.get("name") == step_name and step.get("started_at") and step.get("completed_at"):
            return step
    return None


def resolve_step_window(job: Dict[str, Any], step_name: str) -> WindowResolution:
    step = find_step(job, step_name)
    if step is None:
        logger.error("No valid Job: no completed step named %r", step_name)
        return UNRESOLVED
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug("Matched step: %s", step)
    try:
        start_ms = parse_timestamp_ms(step.get("started_at"))
        end_ms = parse_timestamp_ms(step.get("completed_at"))
    except WindowResolutionError as e:
        logger.error("No valid Job: step %r has unusable timestamps (%s)", step_name, e)
        return UNRESOLVED
    return _window_from_start_and_duration(start_ms, end_ms - start_ms)


def resolve_command_window(command: CompletedCommand) -> WindowResolution:
    if command.start_time is None or command.duration is None:
        logger.error("No valid command: %r has no start time or duration", command.name)
        return UNRESOLVED
    return _window_from_start_and_duration(command.start_time, command.duration)


def resolve_full_stream(
    started_at_ms: Optional[float] = None,
    finished_at_ms: Optional[float] = None,
) -> WindowResolution:
    """Every fetched sample is in scope; the duration is known only if both lifecycle times are."""
    duration_s: Optional[int] = None
    if started_at_ms is not None and finished_at_ms is not None and finished_at_ms >= started_at_ms:
        duration_s = _round_half_up((finished_at_ms - started_at_ms) / 1000.0)
    return WindowResolution(window=UNBOUNDED, duration_s=duration_s, resolved=True, mode=ReportMode.TIMESERIES)


def elapsed_label(t: float, origin: float) -> str:
    """Whole seconds since `origin`, e.g. '15s'."""
    return f"{_round_half_up((t - origin) / 1000.0)}s"
