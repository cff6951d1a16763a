"""
CI status normalization.

Every vendor reports pipeline/job state with its own vocabulary. The helpers
below fold them into the five job statuses, and ``compute_jobs_status``
aggregates a list of jobs into one status.
"""

from collections.abc import Iterable

from deliverygraph.types.pulls import (
    JOB_FAILED,
    JOB_PENDING,
    JOB_RUNNING,
    JOB_SUCCESS,
    JOB_UNKNOWN,
    Job,
)

_FAILED_SYNONYMS = frozenset({"failed", "failure", "error"})
_SUCCESS_SYNONYMS = frozenset({"success", "passed", "ok"})


def compute_jobs_status(jobs: Iterable[Job] | None) -> str:
    """
    Aggregate job statuses into one status.

    Priority: any running -> running, else any failed -> failed, else any
    pending -> pending, else all success -> success, otherwise unknown.
    An empty list is unknown. Comparison is case-insensitive and accepts
    ``failure``/``error`` for failed and ``passed``/``ok`` for success.

    Args:
        jobs: Jobs to aggregate

    Returns:
        One of "running", "pending", "success", "failed", "unknown"
    """
    jobs = list(jobs or [])
    if not jobs:
        return JOB_UNKNOWN

    has_failed = False
    has_pending = False
    all_success = True
    for job in jobs:
        status = str(job.status or "").lower()
        if status == JOB_RUNNING:
            return JOB_RUNNING
        if status in _FAILED_SYNONYMS:
            has_failed = True
            all_success = False
        elif status == JOB_PENDING:
            has_pending = True
            all_success = False
        elif status not in _SUCCESS_SYNONYMS:
            all_success = False

    if has_failed:
        return JOB_FAILED
    if has_pending:
        return JOB_PENDING
    if all_success:
        return JOB_SUCCESS
    return JOB_UNKNOWN


def normalize_gitlab_status(status: str | None) -> str:
    """Map a GitLab pipeline status."""
    value = (status or "").lower()
    if value == "running":
        return JOB_RUNNING
    if value in ("created", "waiting_for_resource", "preparing", "pending", "scheduled", "manual"):
        return JOB_PENDING
    if value == "success":
        return JOB_SUCCESS
    if value in ("failed", "canceled"):
        return JOB_FAILED
    return JOB_UNKNOWN


def normalize_github_status(status: str | None, conclusion: str | None) -> str:
    """Map a GitHub Actions job ``status``/``conclusion`` pair."""
    value = (status or "").lower()
    if value == "in_progress":
        return JOB_RUNNING
    if value in ("queued", "waiting", "requested", "pending"):
        return JOB_PENDING
    if value != "completed":
        return JOB_UNKNOWN

    result = (conclusion or "").lower()
    if result in ("success", "neutral"):
        return JOB_SUCCESS
    if result in ("failure", "timed_out", "cancelled", "startup_failure", "action_required"):
        return JOB_FAILED
    return JOB_UNKNOWN


def normalize_azure_status(status: str | None, result: str | None) -> str:
    """Map an Azure DevOps build ``status``/``result`` pair."""
    value = (status or "").lower()
    if value in ("inprogress", "cancelling"):
        return JOB_RUNNING
    if value in ("notstarted", "postponed"):
        return JOB_PENDING
    if value != "completed":
        return JOB_UNKNOWN

    outcome = (result or "").lower()
    if outcome == "succeeded":
        return JOB_SUCCESS
    if outcome in ("failed", "partiallysucceeded", "canceled"):
        return JOB_FAILED
    return JOB_UNKNOWN


def normalize_bitbucket_state(state: dict | None) -> str:
    """
    Map a Bitbucket pipeline ``state`` object.

    The result name of a completed pipeline wins over its stage name.
    """
    if not state:
        return JOB_UNKNOWN
    result = state.get("result") or {}
    value = str(result.get("name") or state.get("name") or "").lower()
    if value in ("pending", "queued"):
        return JOB_PENDING
    if value in ("in_progress", "running"):
        return JOB_RUNNING
    if value in ("successful", "passed"):
        return JOB_SUCCESS
    if value in ("failed", "error", "stopped", "expired", "unhandled"):
        return JOB_FAILED
    return JOB_UNKNOWN


def normalize_commit_status(state: str | None) -> str:
    """Map a commit status state (Gitea, GitHub-compatible APIs)."""
    value = (state or "").lower()
    if value == "pending":
        return JOB_PENDING
    if value == "success":
        return JOB_SUCCESS
    if value in ("failure", "error"):
        return JOB_FAILED
    return JOB_UNKNOWN
