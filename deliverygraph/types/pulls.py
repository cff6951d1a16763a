"""Pull request and CI job data models."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

# Aggregated job statuses
JOB_RUNNING = "running"
JOB_PENDING = "pending"
JOB_SUCCESS = "success"
JOB_FAILED = "failed"
JOB_UNKNOWN = "unknown"

JOB_STATUSES = (JOB_RUNNING, JOB_PENDING, JOB_SUCCESS, JOB_FAILED, JOB_UNKNOWN)

# Job statuses for which a pipeline is still in flight
IN_PROGRESS_STATUSES = frozenset({JOB_RUNNING, JOB_PENDING})


@dataclass(frozen=True)
class Job:
    """One CI run (job or pipeline) tied to a commit."""

    name: str
    status: str  # "running", "pending", "success", "failed", "unknown"
    web_url: str | None = None
    updated_at: str | None = None


@dataclass
class BranchJobs:
    """Jobs of a branch's latest commit and their aggregated status."""

    jobs: list[Job]
    jobs_status: str


@dataclass
class PullRequest:
    """
    Pull request / merge request, normalized across providers.

    ``id`` is the provider-global identifier; ``number`` the provider-native
    number shown to users (GitHub PR number, GitLab iid, Azure/Bitbucket id).
    """

    id: str
    title: str
    source_branch: str
    target_branch: str
    state: str  # "open", "closed", "merged", "declined"
    number: int | None = None
    description: str = ""
    web_url: str = ""
    author_label: str = "unknown"
    head_sha: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    merged_at: datetime | None = None
    jobs: list[Job] = field(default_factory=list)
    jobs_status: str = JOB_UNKNOWN
    # Written by the ticket and pre/post deployment command collaborators
    related_tickets: list[Any] = field(default_factory=list)
    deployment_actions: list[Any] = field(default_factory=list)
