# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
HTTP client for the stat server (the detached sampling daemon).

Endpoints (all on http://<host>:<port>):
- GET  /cpu, /memory, /network, /disk  -> JSON array of samples since start
- POST /collect                         -> take a sample now (flush before reporting)

No retries: a failed query raises SampleFetchError and only that domain is dropped.
"""

from __future__ import annotations

import json
import logging
from typing import Any, List, Optional

import requests

from .config import TelemetryConfig
from .errors import SampleFetchError
from .stat_types import (
    SAMPLE_TYPES,
    CPUStats,
    DiskStats,
    Domain,
    MemoryStats,
    NetworkStats,
    RawSample,
)

logger = logging.getLogger(__name__)


class StatClient:
    def __init__(self, config: TelemetryConfig, session: Optional[requests.Session] = None):
        self.base_url = config.stat_server_url
        self.timeout = config.request_timeout_s
        self.session = session or requests.Session()

    def _get_json(self, domain: Domain) -> Any:
        url = f"{self.base_url}/{domain.value}"
        logger.debug("Getting %s stats ...", domain.value)
        try:
            resp = self.session.get(url, timeout=self.timeout)
            resp.raise_for_status()
            data = resp.json()
        except requests.exceptions.RequestException as e:
            raise SampleFetchError(domain.value, f"GET {url} failed: {e}")
        except ValueError as e:  # requests.Response.json() raises ValueError on bad JSON
            raise SampleFetchError(domain.value, f"GET {url} returned invalid JSON: {e}")
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Got %s stats: %s", domain.value, json.dumps(data, default=str))
        return data

    def fetch(self, domain: Domain) -> List[RawSample]:
        """Fetch and parse the raw sample array for one domain."""
        data = self._get_json(domain)
        if not isinstance(data, list):
            raise SampleFetchError(domain.value, f"expected a JSON array, got {type(data).__name__}")

        sample_type = SAMPLE_TYPES[domain]
        out: List[RawSample] = []
        skipped = 0
        for raw in data:
            if not isinstance(raw, dict):
                skipped += 1
                continue
            try:
                out.append(sample_type.from_json(raw))
            except ValueError:
                skipped += 1
        if skipped:
            logger.warning("Skipped %d malformed %s samples", skipped, domain.value)
        return out

    def get_cpu_stats(self) -> List[CPUStats]:
        return self.fetch(Domain.CPU)  # type: ignore[return-value]

    def get_memory_stats(self) -> List[MemoryStats]:
        return self.fetch(Domain.MEMORY)  # type: ignore[return-value]

    def get_network_stats(self) -> List[NetworkStats]:
        return self.fetch(Domain.NETWORK)  # type: ignore[return-value]

    def get_disk_stats(self) -> List[DiskStats]:
        return self.fetch(Domain.DISK)  # type: ignore[return-value]

    def trigger_collect(self) -> None:
        """Ask the stat server to take one more sample so the tail of the job is covered."""
        url = f"{self.base_url}/collect"
        logger.debug("Triggering stat collect ...")
        try:
            resp = self.session.post(url, timeout=self.timeout)
            resp.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise SampleFetchError("collect", f"POST {url} failed: {e}")
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Triggered stat collect: %s", resp.text)
