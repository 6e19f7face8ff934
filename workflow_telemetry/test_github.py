"""Pytest tests for github.py (run context, job lookup, delivery)."""

import json

import pytest
import requests

from workflow_telemetry.errors import TelemetryError
from workflow_telemetry.github import (
    GitHubClient,
    GitHubContext,
    context_from_env,
    load_job_json,
    write_job_summary,
)

API = "https://api.github.com"


def test_context_from_env_reads_pr_number(tmp_path):
    event = tmp_path / "event.json"
    event.write_text(json.dumps({"pull_request": {"number": 42}}))
    ctx = context_from_env(
        {
            "GITHUB_REPOSITORY": "octo/repo",
            "GITHUB_RUN_ID": "123",
            "GITHUB_JOB": "test",
            "RUNNER_NAME": "runner-1",
            "GITHUB_EVENT_PATH": str(event),
        }
    )
    assert ctx == GitHubContext(owner="octo", repo="repo", run_id="123", job="test", runner_name="runner-1", pr_number=42)


def test_context_outside_actions_is_none():
    assert context_from_env({}) is None


def test_context_without_pull_request_event(tmp_path):
    event = tmp_path / "event.json"
    event.write_text(json.dumps({"push": {}}))
    ctx = context_from_env({"GITHUB_REPOSITORY": "octo/repo", "GITHUB_EVENT_PATH": str(event)})
    assert ctx.pr_number is None


def test_write_job_summary_appends(tmp_path):
    summary = tmp_path / "summary.md"
    summary.write_text("existing\n")
    assert write_job_summary("### CPU Metrics", {"GITHUB_STEP_SUMMARY": str(summary)}) is True
    text = summary.read_text()
    assert text.startswith("existing\n")
    assert "### CPU Metrics" in text


def test_write_job_summary_without_env():
    assert write_job_summary("x", {}) is False


def test_get_current_job_pages_and_matches_name(make_session, make_response):
    url = f"{API}/repos/octo/repo/actions/runs/123/jobs"

    def handler(method, req_url, kwargs):
        page = kwargs["params"]["page"]
        jobs = {1: [{"name": "lint", "status": "completed"}], 2: [{"name": "test", "status": "in_progress", "steps": []}]}
        return make_response(200, {"total_count": 2, "jobs": jobs[page]})

    session = make_session({("GET", url): handler})
    client = GitHubClient("tok", session=session)
    ctx = GitHubContext("octo", "repo", "123", "test", None, None)

    job = client.get_current_job(ctx)

    assert job["name"] == "test"
    assert len(session.calls) == 2
    assert session.calls[0][2]["headers"]["Authorization"] == "token tok"


def test_get_current_job_falls_back_to_runner(make_session, make_response):
    url = f"{API}/repos/octo/repo/actions/runs/123/jobs"
    jobs = [
        {"name": "Build (linux)", "status": "completed", "runner_name": "runner-1"},
        {"name": "Test (linux)", "status": "in_progress", "runner_name": "runner-1"},
    ]
    session = make_session({("GET", url): make_response(200, {"total_count": 2, "jobs": jobs})})
    ctx = GitHubContext("octo", "repo", "123", "test", "runner-1", None)

    assert GitHubClient(None, session=session).get_current_job(ctx)["name"] == "Test (linux)"


def test_get_current_job_error(make_session):
    ctx = GitHubContext("octo", "repo", "123", "test", None, None)
    with pytest.raises(TelemetryError):
        GitHubClient(None, session=make_session()).get_current_job(ctx)


def test_post_pr_comment(make_session, make_response):
    url = f"{API}/repos/octo/repo/issues/7/comments"
    session = make_session({("POST", url): make_response(201, {"id": 1})})

    assert GitHubClient("tok", session=session).post_pr_comment("octo", "repo", 7, "body") == {"id": 1}
    assert session.calls[0][2]["json"] == {"body": "body"}


def test_post_pr_comment_failure(make_session, make_response):
    url = f"{API}/repos/octo/repo/issues/7/comments"
    session = make_session({("POST", url): make_response(403, {})})
    with pytest.raises(TelemetryError):
        GitHubClient("tok", session=session).post_pr_comment("octo", "repo", 7, "body")


def test_load_job_json(tmp_path):
    path = tmp_path / "job.json"
    path.write_text(json.dumps({"steps": []}))
    assert load_job_json(path) == {"steps": []}
    path.write_text("[]")
    with pytest.raises(TelemetryError):
        load_job_json(path)


def test_get_current_job_rejects_non_object_body(make_session, make_response):
    url = f"{API}/repos/octo/repo/actions/runs/123/jobs"
    session = make_session({("GET", url): make_response(200, ["unexpected"])})
    ctx = GitHubContext("octo", "repo", "123", "test", None, None)
    with pytest.raises(TelemetryError):
        GitHubClient(None, session=session).get_current_job(ctx)


def test_context_with_non_object_event_payload(tmp_path):
    event = tmp_path / "event.json"
    event.write_text(json.dumps(["not", "an", "event"]))
    ctx = context_from_env({"GITHUB_REPOSITORY": "octo/repo", "GITHUB_EVENT_PATH": str(event)})
    assert ctx.pr_number is None
