"""
Pytest fixtures for deliverygraph testing.

Provides common fixtures and record builders for testing code that uses
deliverygraph.
"""

from datetime import datetime, timezone
from typing import Any, Generator

import pytest

from deliverygraph.config import BranchConfig, ProjectConfig, StaticConfigSource
from deliverygraph.testing.mock import MockGitProvider
from deliverygraph.topology import classify, level_for
from deliverygraph.types.branches import BranchRecord
from deliverygraph.types.pulls import JOB_SUCCESS, JOB_UNKNOWN, Job, PullRequest

# ============================================================================
# Mock Provider Fixtures
# ============================================================================


@pytest.fixture
def mock_provider() -> Generator[MockGitProvider, None, None]:
    """
    Provide an active MockGitProvider for testing.

    Example:
        ```python
        def test_my_feature(mock_provider):
            mock_provider.configure_open_pull_requests(response=[my_pr])
            data = asyncio.run(PipelineDataProvider(source, mock_provider).get_pipeline_data())
            assert mock_provider.was_called("list_open_pull_requests")
        ```
    """
    provider = MockGitProvider()
    yield provider
    provider.reset()


@pytest.fixture
def inactive_mock_provider() -> MockGitProvider:
    """Provide a MockGitProvider that behaves as unauthenticated."""
    return MockGitProvider(active=False)


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def sample_branch_configs() -> list[BranchConfig]:
    """Provide a classic main / preprod / uat / integration pipeline."""
    return [
        BranchConfig("main", deploy_target_url="https://acme.my.salesforce.com"),
        BranchConfig("preprod", deploy_target_url="https://acme--preprod.sandbox.my.salesforce.com"),
        BranchConfig("uat", deploy_target_url="https://acme--uat.sandbox.my.salesforce.com"),
        BranchConfig("integration", merge_targets=["uat"], alias="Integration Sandbox"),
    ]


@pytest.fixture
def sample_project_config() -> ProjectConfig:
    """Provide a project configuration raising no warnings for the sample branches."""
    return ProjectConfig(
        manual_actions_file_url="https://docs.example.com/manual-actions.xlsx",
        development_branch="integration",
        available_target_branches=["integration"],
    )


@pytest.fixture
def sample_config_source(
    sample_branch_configs: list[BranchConfig],
    sample_project_config: ProjectConfig,
) -> StaticConfigSource:
    """Provide a StaticConfigSource over the sample pipeline."""
    return StaticConfigSource(sample_branch_configs, sample_project_config)


# ============================================================================
# Sample Data Fixtures
# ============================================================================


@pytest.fixture
def sample_pull_request() -> PullRequest:
    """Provide an open feature pull request into integration."""
    return create_mock_pull_request()


@pytest.fixture
def sample_job() -> Job:
    """Provide a successful job."""
    return create_mock_job()


# ============================================================================
# Helper Functions
# ============================================================================


def create_mock_job(
    name: str = "build",
    status: str = JOB_SUCCESS,
    **kwargs: Any,
) -> Job:
    """
    Create a Job with customizable fields.

    Args:
        name: Job name
        status: Job status
        **kwargs: Additional fields to override

    Returns:
        Job object
    """
    defaults = {
        "web_url": f"https://git.example.com/acme/pipeline/jobs/{name}",
        "updated_at": "2024-01-15T10:30:00Z",
    }
    defaults.update(kwargs)
    return Job(name=name, status=status, **defaults)


def create_mock_pull_request(
    pr_id: str = "1001",
    number: int = 1,
    source_branch: str = "feature/login",
    target_branch: str = "integration",
    jobs_status: str = JOB_UNKNOWN,
    **kwargs: Any,
) -> PullRequest:
    """
    Create a PullRequest with customizable fields.

    Unless ``jobs`` is given, the pull request carries one job whose status
    is ``jobs_status`` (none for unknown), so providers recomputing the
    aggregated status get the same value back.

    Args:
        pr_id: Provider-global pull request ID
        number: Pull request number
        source_branch: Branch containing changes
        target_branch: Branch to merge into
        jobs_status: Aggregated jobs status
        **kwargs: Additional fields to override

    Returns:
        PullRequest object
    """
    jobs = [] if jobs_status == JOB_UNKNOWN else [create_mock_job(status=jobs_status)]
    defaults: dict[str, Any] = {
        "title": f"{source_branch} into {target_branch}",
        "state": "open",
        "web_url": f"https://git.example.com/acme/pipeline/pulls/{number}",
        "author_label": "jdoe",
        "created_at": datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc),
        "jobs": jobs,
    }
    defaults.update(kwargs)
    return PullRequest(
        id=pr_id,
        number=number,
        source_branch=source_branch,
        target_branch=target_branch,
        jobs_status=jobs_status,
        **defaults,
    )


def create_mock_merged_pull_request(
    pr_id: str,
    source_branch: str,
    target_branch: str,
    merged_at: datetime,
    **kwargs: Any,
) -> PullRequest:
    """Create a merged PullRequest."""
    return create_mock_pull_request(
        pr_id=pr_id,
        number=int(pr_id) if pr_id.isdigit() else 1,
        source_branch=source_branch,
        target_branch=target_branch,
        state="merged",
        merged_at=merged_at,
        **kwargs,
    )


def create_mock_branch(
    branch_name: str = "integration",
    merge_targets: list[str] | None = None,
    **kwargs: Any,
) -> BranchRecord:
    """
    Create a classified BranchRecord with customizable fields.

    Args:
        branch_name: Branch name (classifies the branch)
        merge_targets: Merge targets (default: none)
        **kwargs: Additional fields to override

    Returns:
        BranchRecord object
    """
    org_type = kwargs.pop("org_type", classify(branch_name))
    defaults: dict[str, Any] = {"level": level_for(org_type)}
    defaults.update(kwargs)
    return BranchRecord(
        branch_name=branch_name,
        org_type=org_type,
        merge_targets=list(merge_targets or []),
        **defaults,
    )


__all__ = [
    # Fixtures (exported for documentation, actual fixtures are auto-discovered)
    "mock_provider",
    "inactive_mock_provider",
    "sample_branch_configs",
    "sample_project_config",
    "sample_config_source",
    "sample_pull_request",
    "sample_job",
    # Helper functions
    "create_mock_job",
    "create_mock_pull_request",
    "create_mock_merged_pull_request",
    "create_mock_branch",
]
