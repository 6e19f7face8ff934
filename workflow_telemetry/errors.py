# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""Exception types shared by the telemetry modules."""

from __future__ import annotations


class TelemetryError(Exception):
    """Base class for every error raised by workflow_telemetry."""


class ConfigError(TelemetryError):
    """Invalid or unreadable configuration."""


class SampleFetchError(TelemetryError):
    """The stat server could not be queried for one domain."""

    def __init__(self, domain: str, message: str):
        super().__init__(f"{domain}: {message}")
        self.domain = domain


class WindowResolutionError(TelemetryError):
    """No execution window could be derived from the given source."""


class ChartError(TelemetryError):
    """The chart service rejected a request or returned an unusable body."""
