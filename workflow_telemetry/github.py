# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
GitHub glue: find the current job (window source) and deliver the report.

Delivery surfaces:
- job summary: appended to the file named by GITHUB_STEP_SUMMARY
- PR comment:  POST /repos/{owner}/{repo}/issues/{number}/comments
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import requests

from .errors import TelemetryError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GitHubContext:
    owner: str
    repo: str
    run_id: Optional[str]
    job: Optional[str]
    runner_name: Optional[str]
    pr_number: Optional[int]


def _pr_number_from_event(event_path: str) -> Optional[int]:
    if not event_path:
        return None
    try:
        with open(event_path, "r") as f:
            event = json.load(f)
    except (OSError, ValueError) as e:
        logger.debug("Cannot read event payload %s: %s", event_path, e)
        return None
    if not isinstance(event, dict):
        logger.debug("Event payload %s is not an object", event_path)
        return None
    pr = event.get("pull_request") or {}
    if not isinstance(pr, dict):
        return None
    number = pr.get("number")
    return int(number) if isinstance(number, int) else None


def context_from_env(environ: Optional[Mapping[str, str]] = None) -> Optional[GitHubContext]:
    """Build the run context from the standard GitHub Actions env vars (None outside Actions)."""
    env = os.environ if environ is None else environ
    repository = env.get("GITHUB_REPOSITORY") or ""
    if "/" not in repository:
        return None
    owner, repo = repository.split("/", 1)
    return GitHubContext(
        owner=owner,
        repo=repo,
        run_id=env.get("GITHUB_RUN_ID") or None,
        job=env.get("GITHUB_JOB") or None,
        runner_name=env.get("RUNNER_NAME") or None,
        pr_number=_pr_number_from_event(env.get("GITHUB_EVENT_PATH") or ""),
    )


def write_job_summary(body: str, environ: Optional[Mapping[str, str]] = None) -> bool:
    env = os.environ if environ is None else environ
    summary_path = env.get("GITHUB_STEP_SUMMARY")
    if not summary_path:
        logger.info("GITHUB_STEP_SUMMARY is not set; skipping job summary")
        return False
    try:
        with open(summary_path, "a", encoding="utf-8") as f:
            f.write("## Workflow Telemetry\n\n")
            f.write(body)
            f.write("\n")
    except OSError as e:
        logger.error("Unable to write job summary to %s: %s", summary_path, e)
        return False
    return True


class GitHubClient:
    def __init__(
        self,
        token: Optional[str] = None,
        *,
        base_url: str = "https://api.github.com",
        session: Optional[requests.Session] = None,
        timeout: float = 30.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.headers = {"Accept": "application/vnd.github.v3+json"}
        if token:
            self.headers["Authorization"] = f"token {token}"
        self.logger = logging.getLogger(self.__class__.__name__)

    def list_run_jobs(self, owner: str, repo: str, run_id: str) -> List[Dict[str, Any]]:
        url = f"{self.base_url}/repos/{owner}/{repo}/actions/runs/{run_id}/jobs"
        jobs: List[Dict[str, Any]] = []
        page = 1
        while True:
            self.logger.debug("GH REST GET %s page=%d", url, page)
            try:
                resp = self.session.get(
                    url,
                    headers=self.headers,
                    params={"per_page": 100, "page": page},
                    timeout=self.timeout,
                )
                resp.raise_for_status()
                data = resp.json()
            except requests.exceptions.RequestException as e:
                raise TelemetryError(f"listing jobs for run {run_id} failed: {e}")
            except ValueError as e:
                raise TelemetryError(f"listing jobs for run {run_id} returned invalid JSON: {e}")
            if not isinstance(data, dict):
                raise TelemetryError(f"listing jobs for run {run_id} returned a non-object body")
            batch = data.get("jobs") or []
            jobs.extend(j for j in batch if isinstance(j, dict))
            total = int(data.get("total_count") or 0)
            if not batch or len(jobs) >= total:
                return jobs
            page += 1

    def get_current_job(self, ctx: GitHubContext) -> Optional[Dict[str, Any]]:
        """The job of this run matching GITHUB_JOB, else the in-progress job on this runner."""
        if not ctx.run_id:
            return None
        jobs = self.list_run_jobs(ctx.owner, ctx.repo, ctx.run_id)
        for job in jobs:
            if ctx.job and job.get("name") == ctx.job:
                return job
        for job in jobs:
            if job.get("status") == "in_progress" and ctx.runner_name and job.get("runner_name") == ctx.runner_name:
                return job
        return None

    def post_pr_comment(self, owner: str, repo: str, pr_number: int, body: str) -> Dict[str, Any]:
        url = f"{self.base_url}/repos/{owner}/{repo}/issues/{pr_number}/comments"
        try:
            resp = self.session.post(url, headers=self.headers, json={"body": body}, timeout=self.timeout)
            resp.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise TelemetryError(f"posting comment on PR #{pr_number} failed: {e}")
        try:
            data = resp.json()
        except ValueError:
            data = {}
        return data if isinstance(data, dict) else {}


def load_job_json(path: Path) -> Dict[str, Any]:
    """Load a job (as returned by the GitHub jobs API) from a JSON file."""
    try:
        data = json.loads(Path(path).read_text())
    except (OSError, ValueError) as e:
        raise TelemetryError(f"cannot read job JSON {path}: {e}")
    if not isinstance(data, dict):
        raise TelemetryError(f"job JSON {path} must be an object")
    return data
