# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Per-domain aggregation: window filter -> plotted series -> max/avg statistics.

All four domains (CPU, memory, network, disk) go through the same single-pass
`aggregate()`; what differs per domain lives in a DomainDescriptor:
- which raw fields are plotted (and under which labels)
- how values are formatted (`%` vs `M`)
- whether an average is reported in summary mode
- the capacity rule used for the memory usage percentage

Memory capacity rule ("running_max_sum"):
    For each retained sample, the running max of totalMemoryMb is updated and then
    added to a running sum. The reported percentages are
        max_used / running_max_total
        sum_used / sum(running_max_total after each sample)
    and are printed as ratios followed by `%` (no x100). This is what existing
    reports show, so it is kept as-is.

Values that are absent, NaN or negative are plotted and reduced as 0.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from .stat_types import (
    CPUStats,
    DiskStats,
    Domain,
    ExecutionWindow,
    MemoryStats,
    NetworkStats,
    RawSample,
    ReportMode,
    SeriesPoint,
    SummaryRow,
)
from .window import elapsed_label

CAPACITY_NONE = "none"
CAPACITY_RUNNING_MAX_SUM = "running_max_sum"


@dataclass(frozen=True)
class SeriesSpec:
    key: str
    label: str
    extractor: Callable[[RawSample], Optional[float]]
    # Row label in summary mode; None means the quantity has no summary row.
    summary_label: Optional[str] = None
    # Plotted only in timeseries mode.
    timeseries_only: bool = False


@dataclass(frozen=True)
class DomainDescriptor:
    domain: Domain
    title: str
    series: Tuple[SeriesSpec, ...]
    unit: str
    summary_avg: bool = True
    capacity_rule: str = CAPACITY_NONE
    capacity: Optional[Callable[[RawSample], Optional[float]]] = None

    def plotted(self, mode: ReportMode) -> Tuple[SeriesSpec, ...]:
        if mode == ReportMode.TIMESERIES:
            return self.series
        return tuple(s for s in self.series if not s.timeseries_only)

    def fmt(self, value: float) -> str:
        return f"{value:.2f}{self.unit}"


CPU = DomainDescriptor(
    domain=Domain.CPU,
    title="CPU",
    series=(
        SeriesSpec("user_load", "User Load", lambda s: s.user_load, summary_label="CPU(user)"),  # type: ignore[union-attr]
        SeriesSpec("system_load", "System Load", lambda s: s.system_load, summary_label="CPU(sys)"),  # type: ignore[union-attr]
    ),
    unit="%",
)

MEMORY = DomainDescriptor(
    domain=Domain.MEMORY,
    title="Memory",
    series=(
        SeriesSpec("active_memory", "Used", lambda s: s.active_memory_mb, summary_label="Memory"),  # type: ignore[union-attr]
        SeriesSpec("available_memory", "Available", lambda s: s.available_memory_mb, timeseries_only=True),  # type: ignore[union-attr]
    ),
    unit="M",
    capacity_rule=CAPACITY_RUNNING_MAX_SUM,
    capacity=lambda s: s.total_memory_mb,  # type: ignore[union-attr]
)

NETWORK = DomainDescriptor(
    domain=Domain.NETWORK,
    title="Network I/O",
    series=(
        SeriesSpec("read", "Read", lambda s: s.rx_mb, summary_label="Network I/O Read"),  # type: ignore[union-attr]
        SeriesSpec("write", "Write", lambda s: s.tx_mb, summary_label="Network I/O Write"),  # type: ignore[union-attr]
    ),
    unit="M",
    summary_avg=False,
)

DISK = DomainDescriptor(
    domain=Domain.DISK,
    title="Disk I/O",
    series=(
        SeriesSpec("read", "Read", lambda s: s.rx_mb, summary_label="Disk I/O Read"),  # type: ignore[union-attr]
        SeriesSpec("write", "Write", lambda s: s.wx_mb, summary_label="Disk I/O Write"),  # type: ignore[union-attr]
    ),
    unit="M",
    summary_avg=False,
)

DESCRIPTORS: Dict[Domain, DomainDescriptor] = {d.domain: d for d in (CPU, MEMORY, NETWORK, DISK)}

# Expected raw type per domain, used to reject mixed-up inputs early.
_RAW_TYPES = {
    Domain.CPU: CPUStats,
    Domain.MEMORY: MemoryStats,
    Domain.NETWORK: NetworkStats,
    Domain.DISK: DiskStats,
}


def floor_value(value: Optional[float]) -> float:
    """Absent, NaN and negative readings become 0."""
    if value is None:
        return 0.0
    try:
        f = float(value)
    except (ValueError, TypeError):
        return 0.0
    if math.isnan(f) or f <= 0:
        return 0.0
    return f


def safe_div(num: float, den: float) -> float:
    if not den:
        return 0.0
    return num / den


@dataclass
class _Accumulator:
    count: int = 0
    maxes: Dict[str, float] = field(default_factory=dict)
    sums: Dict[str, float] = field(default_factory=dict)
    capacity_max: float = 0.0
    capacity_sum: float = 0.0


@dataclass(frozen=True)
class DomainResult:
    domain: Domain
    series: Dict[str, Tuple[SeriesPoint, ...]]
    summary_rows: Tuple[SummaryRow, ...]
    # Header row first, then one row per sample, then **Max** / **Avg**.
    table: Tuple[Tuple[str, ...], ...]
    sample_count: int

    @property
    def is_empty(self) -> bool:
        return self.sample_count == 0


def filter_window(samples: Iterable[RawSample], window: ExecutionWindow) -> List[RawSample]:
    """Keep samples with window.start <= time <= window.end, in arrival order."""
    return [s for s in samples if window.contains(s.time)]


def _summary_rows(desc: DomainDescriptor, acc: _Accumulator, mode: ReportMode) -> Tuple[SummaryRow, ...]:
    rows: List[SummaryRow] = []
    for spec in desc.plotted(mode):
        if spec.summary_label is None:
            continue
        mx = acc.maxes.get(spec.key, 0.0)
        total = acc.sums.get(spec.key, 0.0)
        max_s = desc.fmt(mx)
        avg_s = desc.fmt(safe_div(total, acc.count)) if desc.summary_avg else "-"
        if desc.capacity_rule == CAPACITY_RUNNING_MAX_SUM:
            max_s += f"({safe_div(mx, acc.capacity_max):.2f}%)"
            avg_s += f"({safe_div(total, acc.capacity_sum):.2f}%)"
        rows.append(SummaryRow(label=spec.summary_label, max_value=max_s, avg_value=avg_s))
    return tuple(rows)


def _table(
    desc: DomainDescriptor,
    specs: Sequence[SeriesSpec],
    samples: Sequence[RawSample],
    values: Sequence[Sequence[float]],
    acc: _Accumulator,
    window: ExecutionWindow,
) -> Tuple[Tuple[str, ...], ...]:
    header = ("Time",) + tuple(s.label for s in specs)
    if not samples:
        return (header,)
    origin = window.start if window.is_bounded else samples[0].time
    rows: List[Tuple[str, ...]] = [header]
    for sample, vals in zip(samples, values):
        rows.append((elapsed_label(sample.time, origin),) + tuple(desc.fmt(v) for v in vals))  # type: ignore[arg-type]
    rows.append(("**Max**",) + tuple(desc.fmt(acc.maxes.get(s.key, 0.0)) for s in specs))
    rows.append(("**Avg**",) + tuple(desc.fmt(safe_div(acc.sums.get(s.key, 0.0), acc.count)) for s in specs))
    return tuple(rows)


def aggregate(
    samples: Iterable[RawSample],
    window: ExecutionWindow,
    descriptor: DomainDescriptor,
    mode: ReportMode = ReportMode.SUMMARY,
) -> DomainResult:
    """Reduce one domain's raw samples to plotted series + summary rows + time table.

    Pure function of its inputs; never raises on empty input.
    """
    expected = _RAW_TYPES[descriptor.domain]
    specs = descriptor.plotted(mode)
    acc = _Accumulator(
        maxes={s.key: 0.0 for s in specs},
        sums={s.key: 0.0 for s in specs},
    )
    series: Dict[str, List[SeriesPoint]] = {s.key: [] for s in specs}
    kept: List[RawSample] = []
    per_sample: List[Tuple[float, ...]] = []

    for sample in filter_window(samples, window):
        if not isinstance(sample, expected):
            raise TypeError(f"{descriptor.domain.value}: unexpected sample type {type(sample).__name__}")
        vals = tuple(floor_value(spec.extractor(sample)) for spec in specs)
        for spec, v in zip(specs, vals):
            series[spec.key].append(SeriesPoint(x=sample.time, y=v))
            acc.maxes[spec.key] = max(acc.maxes[spec.key], v)
            acc.sums[spec.key] += v
        if descriptor.capacity is not None:
            acc.capacity_max = max(acc.capacity_max, floor_value(descriptor.capacity(sample)))
            acc.capacity_sum += acc.capacity_max
        acc.count += 1
        kept.append(sample)
        per_sample.append(vals)

    table: Tuple[Tuple[str, ...], ...] = ()
    if mode == ReportMode.TIMESERIES:
        table = _table(descriptor, specs, kept, per_sample, acc, window)

    return DomainResult(
        domain=descriptor.domain,
        series={k: tuple(v) for k, v in series.items()},
        summary_rows=_summary_rows(descriptor, acc, mode),
        table=table,
        sample_count=acc.count,
    )
