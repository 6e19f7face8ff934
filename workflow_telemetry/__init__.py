"""
CI job resource telemetry (workflow_telemetry).

This package contains:
- a client for the stat server (the detached sampling daemon)
- execution-window resolution (job step, measured command, full stream)
- per-domain aggregation (CPU, memory, network, disk)
- chart service requests and markdown report composition

Public API is re-exported from:
- `workflow_telemetry.collector` for the start/finish/report lifecycle
- `workflow_telemetry.aggregate` for the aggregation primitives
- `workflow_telemetry.report` for report composition
"""

from .aggregate import aggregate, DomainResult  # noqa: F401
from .collector import finish, generate_report, report, start  # noqa: F401
from .config import TelemetryConfig, load_config  # noqa: F401
from .report import compose_report, markdown_table  # noqa: F401

__all__ = [
    "DomainResult",
    "TelemetryConfig",
    "aggregate",
    "compose_report",
    "finish",
    "generate_report",
    "load_config",
    "markdown_table",
    "report",
    "start",
]
