# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Stat collector lifecycle and report pipeline.

- start():  spawn the sampling daemon detached (not awaited) and record the start time
- finish(): ask the daemon for one last sample
- report(): resolve the window, run the four domain pipelines, compose markdown

Each domain pipeline (fetch -> aggregate -> charts) runs on its own worker with
its own accumulators. A failure inside one domain is contained in its
DomainOutcome; the other domains and the composition still happen. report()
itself never raises: the surrounding job must complete whatever telemetry does.
"""

from __future__ import annotations

import json
import logging
import os
import subprocess
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Dict, Optional

from .aggregate import DESCRIPTORS, aggregate
from .charts import ChartClient
from .config import TelemetryConfig
from .errors import SampleFetchError
from .report import DOMAIN_ORDER, DomainOutcome, compose_report
from .stat_client import StatClient
from .stat_types import CompletedCommand, Domain
from .window import (
    WindowResolution,
    resolve_command_window,
    resolve_full_stream,
    resolve_step_window,
)

logger = logging.getLogger(__name__)


def _now_ms() -> float:
    return time.time() * 1000.0


def run_domain(
    domain: Domain,
    client: StatClient,
    chart_client: ChartClient,
    resolution: WindowResolution,
    axis_color: str,
) -> DomainOutcome:
    """Fetch, aggregate and chart one domain. Never raises."""
    try:
        samples = client.fetch(domain)
        result = aggregate(samples, resolution.window, DESCRIPTORS[domain], resolution.mode)
        charts = chart_client.charts_for(result, axis_color)
    except SampleFetchError as e:
        logger.error("Unable to get %s stats: %s", domain.value, e)
        return DomainOutcome(domain=domain, error=str(e))
    except Exception as e:
        logger.exception("Unable to process %s stats", domain.value)
        return DomainOutcome(domain=domain, error=f"{type(e).__name__}: {e}")

    logger.debug("%s: %d samples in window, charts=%s", domain.value, result.sample_count, sorted(charts))
    return DomainOutcome(domain=domain, result=result, charts=charts)


def generate_report(
    config: TelemetryConfig,
    resolution: WindowResolution,
    *,
    client: Optional[StatClient] = None,
    chart_client: Optional[ChartClient] = None,
) -> str:
    client = client or StatClient(config)
    chart_client = chart_client or ChartClient(config)
    axis_color = config.axis_color

    outcomes: Dict[Domain, DomainOutcome] = {}
    with ThreadPoolExecutor(max_workers=len(DOMAIN_ORDER)) as executor:
        futs = {
            domain: executor.submit(run_domain, domain, client, chart_client, resolution, axis_color)
            for domain in DOMAIN_ORDER
        }
        for domain, fut in futs.items():
            outcomes[domain] = fut.result()

    return compose_report(outcomes, resolution)


def _write_state(path: Path, state: Dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(state))


def read_state(path: Path) -> Dict[str, Any]:
    """Lifecycle state written by start(); empty if missing or unreadable."""
    try:
        data = json.loads(Path(path).read_text())
    except (OSError, ValueError):
        return {}
    return data if isinstance(data, dict) else {}


def start(config: TelemetryConfig) -> bool:
    logger.info("Starting stat collector ...")
    try:
        if config.sampler_command:
            env = dict(os.environ)
            if config.metric_frequency_s:
                env["WORKFLOW_TELEMETRY_STAT_FREQ"] = str(config.metric_frequency_s * 1000)
            subprocess.Popen(
                list(config.sampler_command),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                env=env,
                start_new_session=True,
            )
        else:
            logger.warning("No sampler command configured; assuming the stat server is already running")
        _write_state(config.state_path, {"started_at": _now_ms()})
        logger.info("Started stat collector")
        return True
    except Exception:
        logger.exception("Unable to start stat collector")
        return False


def finish(config: TelemetryConfig, *, client: Optional[StatClient] = None) -> bool:
    logger.info("Finishing stat collector ...")
    try:
        # Collect once more so the stats since the latest scheduled sample are included.
        (client or StatClient(config)).trigger_collect()
        logger.info("Finished stat collector")
        return True
    except Exception:
        logger.exception("Unable to finish stat collector")
        return False


def resolve_window(
    config: TelemetryConfig,
    *,
    job: Optional[Dict[str, Any]] = None,
    command: Optional[CompletedCommand] = None,
    full_stream: bool = False,
) -> Optional[WindowResolution]:
    """Pick the first available window source: job step, measured command, full stream."""
    if job is not None:
        return resolve_step_window(job, config.step_name)
    if command is not None:
        return resolve_command_window(command)
    if full_stream:
        started_at = read_state(config.state_path).get("started_at")
        try:
            started_ms = float(started_at) if started_at is not None else None
        except (ValueError, TypeError):
            started_ms = None
        return resolve_full_stream(started_ms, _now_ms() if started_ms is not None else None)
    return None


def report(
    config: TelemetryConfig,
    *,
    job: Optional[Dict[str, Any]] = None,
    command: Optional[CompletedCommand] = None,
    full_stream: bool = False,
    client: Optional[StatClient] = None,
    chart_client: Optional[ChartClient] = None,
) -> Optional[str]:
    """Top-level report call: markdown on success, None on any failure."""
    logger.info("Reporting stat collector result ...")
    try:
        resolution = resolve_window(config, job=job, command=command, full_stream=full_stream)
        if resolution is None:
            logger.warning("No execution window source given; nothing to report")
            return None
        content = generate_report(config, resolution, client=client, chart_client=chart_client)
        logger.info("Reported stat collector result")
        return content
    except Exception:
        logger.exception("Unable to report stat collector result")
        return None
