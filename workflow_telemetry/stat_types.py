# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Shared data types for the telemetry pipeline.

Raw samples mirror the JSON served by the stat server (camelCase keys,
epoch-millisecond `time`). Everything derived from them (series points,
summary rows, chart results) is immutable and scoped to one report call.

This module MUST NOT import any other workflow_telemetry module to avoid cycles.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Union


class Domain(str, Enum):
    """Resource domains served by the stat server (value == endpoint path)."""

    CPU = "cpu"
    MEMORY = "memory"
    NETWORK = "network"
    DISK = "disk"


class ReportMode(str, Enum):
    """How per-domain statistics are rendered.

    SUMMARY: two fixed max/avg rows per domain (named step or measured command).
    TIMESERIES: one row per sample plus trailing Max/Avg rows (full stream).
    """

    SUMMARY = "summary"
    TIMESERIES = "timeseries"


def _num(value: Any) -> Optional[float]:
    """Coerce a JSON value to float; None for absent, non-numeric or NaN values."""
    if value is None or isinstance(value, bool):
        return None
    try:
        f = float(value)
    except (ValueError, TypeError):
        return None
    if math.isnan(f):
        return None
    return f


def _time(raw: Dict[str, Any]) -> float:
    t = _num(raw.get("time"))
    if t is None:
        raise ValueError(f"sample has no usable 'time': {raw!r}")
    return t


@dataclass(frozen=True)
class CPUStats:
    time: float
    total_load: Optional[float]
    user_load: Optional[float]
    system_load: Optional[float]

    @classmethod
    def from_json(cls, raw: Dict[str, Any]) -> "CPUStats":
        return cls(
            time=_time(raw),
            total_load=_num(raw.get("totalLoad")),
            user_load=_num(raw.get("userLoad")),
            system_load=_num(raw.get("systemLoad")),
        )


@dataclass(frozen=True)
class MemoryStats:
    time: float
    total_memory_mb: Optional[float]
    active_memory_mb: Optional[float]
    available_memory_mb: Optional[float]

    @classmethod
    def from_json(cls, raw: Dict[str, Any]) -> "MemoryStats":
        return cls(
            time=_time(raw),
            total_memory_mb=_num(raw.get("totalMemoryMb")),
            active_memory_mb=_num(raw.get("activeMemoryMb")),
            available_memory_mb=_num(raw.get("availableMemoryMb")),
        )


@dataclass(frozen=True)
class NetworkStats:
    time: float
    rx_mb: Optional[float]
    tx_mb: Optional[float]

    @classmethod
    def from_json(cls, raw: Dict[str, Any]) -> "NetworkStats":
        return cls(time=_time(raw), rx_mb=_num(raw.get("rxMb")), tx_mb=_num(raw.get("txMb")))


@dataclass(frozen=True)
class DiskStats:
    time: float
    rx_mb: Optional[float]
    wx_mb: Optional[float]

    @classmethod
    def from_json(cls, raw: Dict[str, Any]) -> "DiskStats":
        return cls(time=_time(raw), rx_mb=_num(raw.get("rxMb")), wx_mb=_num(raw.get("wxMb")))


RawSample = Union[CPUStats, MemoryStats, NetworkStats, DiskStats]

SAMPLE_TYPES = {
    Domain.CPU: CPUStats,
    Domain.MEMORY: MemoryStats,
    Domain.NETWORK: NetworkStats,
    Domain.DISK: DiskStats,
}


@dataclass(frozen=True)
class SeriesPoint:
    """One plotted point: x is the sample time (epoch ms), y is never negative."""

    x: float
    y: float

    def to_json(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y}


@dataclass(frozen=True)
class ExecutionWindow:
    """Inclusive [start, end] window in epoch ms. Both None means unbounded."""

    start: Optional[float] = None
    end: Optional[float] = None

    @property
    def is_bounded(self) -> bool:
        return self.start is not None and self.end is not None

    def contains(self, t: float) -> bool:
        if not self.is_bounded:
            return True
        return self.start <= t <= self.end  # type: ignore[operator]


UNBOUNDED = ExecutionWindow()


@dataclass(frozen=True)
class CompletedCommand:
    """A measured command as reported by the process tracer (times in ms)."""

    name: str
    start_time: Optional[float]
    duration: Optional[float]
    exit_code: Optional[int] = None

    @classmethod
    def from_json(cls, raw: Dict[str, Any]) -> "CompletedCommand":
        exit_code = _num(raw.get("exitCode"))
        return cls(
            name=str(raw.get("name") or ""),
            start_time=_num(raw.get("startTime")),
            duration=_num(raw.get("duration")),
            exit_code=int(exit_code) if exit_code is not None else None,
        )


@dataclass(frozen=True)
class ChartResult:
    id: str
    url: str


@dataclass(frozen=True)
class ChartFailure:
    reason: str


ChartOutcome = Union[ChartResult, ChartFailure]


@dataclass(frozen=True)
class SummaryRow:
    label: str
    max_value: str
    avg_value: str

    def as_list(self) -> list:
        return [self.label, self.max_value, self.avg_value]
