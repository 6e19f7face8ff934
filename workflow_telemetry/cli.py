# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
CLI wrapper for workflow_telemetry.

We keep CLI glue in its own module so the report pipeline (`collector.py`)
stays easy to call from other tools.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from . import collector
from . import github
from .config import TelemetryConfig, load_config
from .errors import ConfigError, TelemetryError
from .stat_types import CompletedCommand

logger = logging.getLogger(__name__)


def _load_command(path: Path) -> CompletedCommand:
    try:
        data = json.loads(Path(path).read_text())
    except (OSError, ValueError) as e:
        raise TelemetryError(f"cannot read command JSON {path}: {e}")
    if not isinstance(data, dict):
        raise TelemetryError(f"command JSON {path} must be an object")
    return CompletedCommand.from_json(data)


def _current_job(config: TelemetryConfig) -> Optional[Dict[str, Any]]:
    ctx = github.context_from_env()
    if ctx is None:
        logger.warning("Not running inside GitHub Actions; cannot look up the current job")
        return None
    client = github.GitHubClient(config.github_token, timeout=config.request_timeout_s)
    try:
        return client.get_current_job(ctx)
    except TelemetryError as e:
        logger.error("Unable to get current job: %s", e)
        return None


def _deliver(config: TelemetryConfig, content: str) -> None:
    if config.job_summary:
        github.write_job_summary(content)
    if not config.comment_on_pr:
        return
    ctx = github.context_from_env()
    if ctx is None or ctx.pr_number is None:
        logger.info("Not a pull request run; skipping PR comment")
        return
    client = github.GitHubClient(config.github_token, timeout=config.request_timeout_s)
    try:
        client.post_pr_comment(ctx.owner, ctx.repo, ctx.pr_number, content)
        logger.info("Posted telemetry report on PR #%d", ctx.pr_number)
    except TelemetryError as e:
        logger.error("Unable to post PR comment: %s", e)


def _cmd_report(config: TelemetryConfig, args: argparse.Namespace) -> int:
    job: Optional[Dict[str, Any]] = None
    command: Optional[CompletedCommand] = None
    if args.job_json:
        job = github.load_job_json(Path(args.job_json))
    elif args.command_json:
        command = _load_command(Path(args.command_json))
    elif not args.full_stream:
        job = _current_job(config)

    content = collector.report(config, job=job, command=command, full_stream=bool(args.full_stream))
    if content is None:
        logger.warning("No telemetry report produced")
        return 0
    if not content:
        logger.info("Telemetry report is empty; nothing to deliver")
        return 0
    if args.output:
        try:
            Path(args.output).write_text(content + "\n")
        except OSError as e:
            logger.error("Unable to write report to %s: %s", args.output, e)
    else:
        sys.stdout.write(content + ("\n" if not content.endswith("\n") else ""))
    if not args.no_deliver:
        _deliver(config, content)
    return 0


def _cli(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Collect CI job resource telemetry and render a markdown report.",
        epilog="Examples:\n"
               "  %(prog)s start\n"
               "  %(prog)s finish\n"
               "  %(prog)s report --job-json job.json --step-name 'Run test'\n"
               "  %(prog)s report --full-stream --output telemetry.md",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--config", type=Path, default=None, help="YAML config file")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("--theme", default=None, help="Chart theme: light or dark")
    parser.add_argument("--step-name", default=None, help="Name of the job step to report on")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("start", help="Spawn the sampling daemon (detached)")
    sub.add_parser("finish", help="Ask the sampling daemon for a final sample")

    p_report = sub.add_parser("report", help="Render the telemetry report")
    src = p_report.add_mutually_exclusive_group()
    src.add_argument("--job-json", default=None, help="GitHub job JSON (with steps) to take the window from")
    src.add_argument("--command-json", default=None, help="Measured command JSON (startTime/duration in ms)")
    src.add_argument("--full-stream", action="store_true", help="Report on every sample since start")
    p_report.add_argument("--output", default=None, help="Write markdown here instead of stdout")
    p_report.add_argument("--no-deliver", action="store_true", help="Do not write job summary / PR comment")

    args = parser.parse_args(list(argv) if argv is not None else None)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(message)s")

    try:
        config = load_config(args.config, theme=args.theme, step_name=args.step_name)
    except ConfigError as e:
        logger.error("ERROR: %s", e)
        return 2

    if args.command == "start":
        collector.start(config)
        return 0
    if args.command == "finish":
        collector.finish(config)
        return 0
    try:
        return _cmd_report(config, args)
    except TelemetryError as e:
        logger.error("ERROR: %s", e)
        return 2
