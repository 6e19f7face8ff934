#!/usr/bin/env python3
"""Module entrypoint for `workflow_telemetry`.

Usage:
  - `python3 -m workflow_telemetry start`
  - `python3 -m workflow_telemetry report --full-stream`
"""

from __future__ import annotations

from .cli import _cli


if __name__ == "__main__":
    raise SystemExit(_cli())
