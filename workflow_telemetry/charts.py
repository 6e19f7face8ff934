# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Chart service requests.

Two request shapes, both PUT with a JSON body and answered with `{"id": ..., "url": ...}`:
- <chart_api_url>/line/time          single series (network/disk read or write)
- <chart_api_url>/stacked-area/time  several related series (CPU user+system, memory)

Every call returns a ChartResult or a ChartFailure; transport and remote errors are
logged here and never propagate, so one missing chart only drops its own section.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

import requests

from .aggregate import DomainResult
from .config import TelemetryConfig
from .errors import ChartError
from .stat_types import ChartFailure, ChartOutcome, ChartResult, Domain, SeriesPoint

logger = logging.getLogger(__name__)

CHART_WIDTH = 1000
CHART_HEIGHT = 500


@dataclass(frozen=True)
class ChartSeries:
    label: str
    color: str
    points: Sequence[SeriesPoint]

    def to_json(self) -> Dict[str, Any]:
        return {"label": self.label, "color": self.color, "points": [p.to_json() for p in self.points]}


def _options(label: str, axis_color: str) -> Dict[str, Any]:
    return {
        "width": CHART_WIDTH,
        "height": CHART_HEIGHT,
        "xAxis": {"label": "Time"},
        "yAxis": {"label": label},
        "timeTicks": {"unit": "auto"},
        "axisColor": axis_color,
    }


def build_line_payload(label: str, axis_color: str, line: ChartSeries) -> Dict[str, Any]:
    return {"options": _options(label, axis_color), "lines": [line.to_json()]}


def build_stacked_area_payload(label: str, axis_color: str, areas: Sequence[ChartSeries]) -> Dict[str, Any]:
    return {"options": _options(label, axis_color), "areas": [a.to_json() for a in areas]}


def _parse_chart_response(resp: requests.Response) -> ChartResult:
    try:
        data = resp.json()
    except ValueError as e:
        raise ChartError(f"invalid JSON from chart service: {e}")
    if not isinstance(data, dict) or not data.get("id") or not data.get("url"):
        raise ChartError(f"chart service response has no id/url: {data!r}")
    return ChartResult(id=str(data["id"]), url=str(data["url"]))


class ChartClient:
    def __init__(self, config: TelemetryConfig, session: Optional[requests.Session] = None):
        self.base_url = config.chart_api_url.rstrip("/")
        self.timeout = config.request_timeout_s
        self.session = session or requests.Session()

    def _put(self, kind: str, payload: Dict[str, Any]) -> ChartOutcome:
        url = f"{self.base_url}/{kind}/time"
        try:
            resp = self.session.put(url, json=payload, timeout=self.timeout)
            resp.raise_for_status()
            return _parse_chart_response(resp)
        except (requests.exceptions.RequestException, ChartError) as e:
            logger.error("Chart request to %s failed: %s", url, e)
            logger.error("%s payload: %s", kind, json.dumps(payload))
            return ChartFailure(reason=str(e))

    def line_graph(self, label: str, axis_color: str, line: ChartSeries) -> ChartOutcome:
        return self._put("line", build_line_payload(label, axis_color, line))

    def stacked_area_graph(self, label: str, axis_color: str, areas: Sequence[ChartSeries]) -> ChartOutcome:
        return self._put("stacked-area", build_stacked_area_payload(label, axis_color, areas))

    def charts_for(self, result: DomainResult, axis_color: str) -> Dict[str, ChartOutcome]:
        """Request the fixed chart set of one domain. Empty series are not requested."""
        out: Dict[str, ChartOutcome] = {}
        for chart in CHART_LAYOUT[result.domain]:
            areas = [
                ChartSeries(label=label, color=color, points=result.series[key])
                for key, label, color in chart.series
                if key in result.series
            ]
            if not areas or not all(a.points for a in areas):
                continue
            if chart.stacked:
                out[chart.name] = self.stacked_area_graph(chart.label, axis_color, areas)
            else:
                out[chart.name] = self.line_graph(chart.label, axis_color, areas[0])
        return out


@dataclass(frozen=True)
class ChartSpec:
    name: str
    label: str
    stacked: bool
    # (series key, legend label, color)
    series: Sequence[tuple]


CHART_LAYOUT: Dict[Domain, List[ChartSpec]] = {
    Domain.CPU: [
        ChartSpec(
            "cpu_load",
            "CPU Load (%)",
            True,
            [("user_load", "User Load", "#e41a1c99"), ("system_load", "System Load", "#ff7f0099")],
        ),
    ],
    Domain.MEMORY: [
        ChartSpec(
            "memory_usage",
            "Memory Usage (MB)",
            True,
            [("active_memory", "Used", "#377eb899"), ("available_memory", "Available", "#4daf4a99")],
        ),
    ],
    Domain.NETWORK: [
        ChartSpec("network_read", "Network I/O Read (MB)", False, [("read", "Read", "#be4d25")]),
        ChartSpec("network_write", "Network I/O Write (MB)", False, [("write", "Write", "#6c25be")]),
    ],
    Domain.DISK: [
        ChartSpec("disk_read", "Disk I/O Read (MB)", False, [("read", "Read", "#be4d25")]),
        ChartSpec("disk_write", "Disk I/O Write (MB)", False, [("write", "Write", "#6c25be")]),
    ],
}
