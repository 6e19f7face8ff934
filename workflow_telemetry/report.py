# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Markdown report composition.

The report is an ordered list of sections, each guarded by its own predicate and
evaluated in a fixed order (no early return):

    cpu -> memory -> io_header -> network_io -> disk_io -> statistics

A section whose backing data is missing (failed chart, no in-window samples,
unknown duration) contributes nothing; the others are unaffected.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Mapping, Optional, Sequence

from .aggregate import DESCRIPTORS, DomainResult
from .stat_types import ChartOutcome, ChartResult, Domain, ReportMode
from .window import WindowResolution

DOMAIN_ORDER = (Domain.CPU, Domain.MEMORY, Domain.NETWORK, Domain.DISK)


@dataclass(frozen=True)
class DomainOutcome:
    """Everything one domain pipeline produced: aggregation, charts, or the error that stopped it."""

    domain: Domain
    result: Optional[DomainResult] = None
    charts: Dict[str, ChartOutcome] = field(default_factory=dict)
    error: Optional[str] = None

    def chart(self, name: str) -> Optional[ChartResult]:
        c = self.charts.get(name)
        return c if isinstance(c, ChartResult) else None

    @property
    def has_samples(self) -> bool:
        return self.result is not None and not self.result.is_empty


@dataclass(frozen=True)
class ReportInput:
    outcomes: Mapping[Domain, DomainOutcome]
    resolution: WindowResolution

    def outcome(self, domain: Domain) -> DomainOutcome:
        return self.outcomes.get(domain) or DomainOutcome(domain=domain)

    def chart(self, domain: Domain, name: str) -> Optional[ChartResult]:
        return self.outcome(domain).chart(name)


@dataclass(frozen=True)
class Section:
    name: str
    predicate: Callable[[ReportInput], bool]
    render: Callable[[ReportInput], List[str]]


def _escape_cell(value: object) -> str:
    return str(value).replace("|", "\\|").replace("\n", " ")


def markdown_table(rows: Sequence[Sequence[object]]) -> str:
    """Render rows (first row is the header) as a padded GitHub markdown table."""
    if not rows:
        return ""
    cells = [[_escape_cell(c) for c in row] for row in rows]
    ncols = max(len(r) for r in cells)
    for r in cells:
        r.extend([""] * (ncols - len(r)))
    widths = [max(3, max(len(r[i]) for r in cells)) for i in range(ncols)]

    def line(r: Sequence[str]) -> str:
        return "| " + " | ".join(c.ljust(w) for c, w in zip(r, widths)) + " |"

    out = [line(cells[0]), line(["-" * w for w in widths])]
    out.extend(line(r) for r in cells[1:])
    return "\n".join(out)


def _image(chart: ChartResult) -> str:
    return f"![{chart.id}]({chart.url})"


def _both(inp: ReportInput, domain: Domain, read: str, write: str) -> bool:
    return inp.chart(domain, read) is not None and inp.chart(domain, write) is not None


def _network_io(inp: ReportInput) -> bool:
    return _both(inp, Domain.NETWORK, "network_read", "network_write")


def _disk_io(inp: ReportInput) -> bool:
    return _both(inp, Domain.DISK, "disk_read", "disk_write")


def _render_cpu(inp: ReportInput) -> List[str]:
    return ["### CPU Metrics", _image(inp.chart(Domain.CPU, "cpu_load")), ""]  # type: ignore[arg-type]


def _render_memory(inp: ReportInput) -> List[str]:
    return ["### Memory Metrics", _image(inp.chart(Domain.MEMORY, "memory_usage")), ""]  # type: ignore[arg-type]


def _render_io_header(inp: ReportInput) -> List[str]:
    return [
        "### IO Metrics",
        "|               | Read      | Write     |",
        "|---            |---        |---        |",
    ]


def _render_network_io(inp: ReportInput) -> List[str]:
    read = _image(inp.chart(Domain.NETWORK, "network_read"))  # type: ignore[arg-type]
    write = _image(inp.chart(Domain.NETWORK, "network_write"))  # type: ignore[arg-type]
    return [f"| Network I/O   | {read}        | {write}        |"]


def _render_disk_io(inp: ReportInput) -> List[str]:
    read = _image(inp.chart(Domain.DISK, "disk_read"))  # type: ignore[arg-type]
    write = _image(inp.chart(Domain.DISK, "disk_write"))  # type: ignore[arg-type]
    return [f"| Disk I/O      | {read}              | {write}              |"]


def _render_statistics(inp: ReportInput) -> List[str]:
    lines = ["### Performance Statistics", f"Executing duration: {inp.resolution.duration_s}s"]
    if inp.resolution.mode == ReportMode.SUMMARY:
        table: List[List[str]] = [["Domain", "MaxValue", "AvgValue"]]
        for domain in DOMAIN_ORDER:
            outcome = inp.outcome(domain)
            if outcome.has_samples:
                table.extend(row.as_list() for row in outcome.result.summary_rows)  # type: ignore[union-attr]
        lines.append(markdown_table(table))
        return lines

    for domain in DOMAIN_ORDER:
        outcome = inp.outcome(domain)
        if not outcome.has_samples:
            continue
        lines.append(f"#### {DESCRIPTORS[domain].title}")
        lines.append(markdown_table(outcome.result.table))  # type: ignore[union-attr]
        lines.append("")
    return lines


SECTIONS: Sequence[Section] = (
    Section("cpu", lambda inp: inp.chart(Domain.CPU, "cpu_load") is not None, _render_cpu),
    Section("memory", lambda inp: inp.chart(Domain.MEMORY, "memory_usage") is not None, _render_memory),
    Section("io_header", lambda inp: _network_io(inp) or _disk_io(inp), _render_io_header),
    Section("network_io", _network_io, _render_network_io),
    Section("disk_io", _disk_io, _render_disk_io),
    Section("statistics", lambda inp: inp.resolution.duration_known, _render_statistics),
)


def emitted_sections(inp: ReportInput, sections: Sequence[Section] = SECTIONS) -> List[str]:
    """Names of the sections whose predicate holds, in report order."""
    return [s.name for s in sections if s.predicate(inp)]


def compose_report(
    outcomes: Mapping[Domain, DomainOutcome],
    resolution: WindowResolution,
    sections: Sequence[Section] = SECTIONS,
) -> str:
    inp = ReportInput(outcomes=outcomes, resolution=resolution)
    items: List[str] = []
    for section in sections:
        if section.predicate(inp):
            items.extend(section.render(inp))
    return "\n".join(items)
