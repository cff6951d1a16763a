"""
Mock git hosting provider for testing.

Provides a MockGitProvider that answers from configured data instead of a
vendor API. It subclasses GitHostingProvider, so the shared provider logic
(job aggregation, "since last merge" filtering) runs unchanged.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, TypeVar

from deliverygraph.providers.base import GitHostingProvider
from deliverygraph.types.pulls import BranchJobs, Job, PullRequest
from deliverygraph.types.repos import RepoInfo

T = TypeVar("T")


@dataclass
class MockResponse:
    """Configuration for a mock response."""

    data: Any
    error: Exception | None = None
    call_count: int = 0


@dataclass
class MockCall:
    """Record of a method call."""

    method: str
    args: tuple[Any, ...]
    kwargs: dict[str, Any]
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def default_repo_info() -> RepoInfo:
    return RepoInfo(
        provider_name="mock",
        host="git.example.com",
        owner="acme",
        repo="pipeline",
        remote_url="https://git.example.com/acme/pipeline.git",
        web_url="https://git.example.com/acme/pipeline",
    )


class MockGitProvider(GitHostingProvider):
    """
    Mock git hosting provider for testing.

    Example:
        ```python
        from deliverygraph.exceptions import ServerError
        from deliverygraph.testing import MockGitProvider, create_mock_pull_request

        mock = MockGitProvider()
        mock.configure_open_pull_requests(
            response=[create_mock_pull_request(source_branch="feature/x", target_branch="integration")]
        )
        mock.configure_branch_jobs("main", error=ServerError("HTTP_500", "boom"))

        data = await PipelineDataProvider(config_source, mock).get_pipeline_data()

        assert mock.was_called("list_open_pull_requests")
        assert mock.call_count("get_jobs_for_branch_latest_commit") == 3
        ```
    """

    provider_name = "mock"
    provider_label = "Mock"
    pull_request_label = "Pull Request"
    pull_requests_path = "/pulls"

    def __init__(
        self,
        active: bool = True,
        repo_info: RepoInfo | None = None,
        supports_create_pull_request: bool = True,
    ) -> None:
        """
        Initialize the mock provider.

        Args:
            active: Whether the provider behaves as authenticated
            repo_info: Repository coordinates (default: git.example.com/acme/pipeline)
            supports_create_pull_request: Whether "new pull request" URLs are available
        """
        super().__init__(repo_info=repo_info or default_repo_info(), token="mock-token")
        self.is_active = active
        self.supports_create_pull_request = supports_create_pull_request
        self._calls: list[MockCall] = []
        self._responses: dict[tuple[str, str], MockResponse] = {}

    # Configuration

    def configure_open_pull_requests(
        self,
        response: list[PullRequest] | None = None,
        error: Exception | None = None,
    ) -> None:
        """Configure the response for list_open_pull_requests() calls."""
        self._responses[("open", "")] = MockResponse(data=response, error=error)

    def configure_pull_requests_for_branch(
        self,
        target_branch: str,
        response: list[PullRequest] | None = None,
        error: Exception | None = None,
    ) -> None:
        """Configure the pull requests targeting a branch (any state)."""
        self._responses[("branch", target_branch)] = MockResponse(data=response, error=error)

    def configure_merged_pull_requests(
        self,
        target_branch: str,
        response: list[PullRequest] | None = None,
        error: Exception | None = None,
    ) -> None:
        """Configure the merged pull requests targeting a branch."""
        self._responses[("merged", target_branch)] = MockResponse(data=response, error=error)

    def configure_branch_jobs(
        self,
        branch_name: str,
        response: list[Job] | None = None,
        error: Exception | None = None,
    ) -> None:
        """Configure the jobs of a branch's latest commit."""
        self._responses[("branch_jobs", branch_name)] = MockResponse(data=response, error=error)

    def configure_pull_request_jobs(
        self,
        source_branch: str,
        response: list[Job] | None = None,
        error: Exception | None = None,
    ) -> None:
        """Configure the jobs of pull requests coming from a branch."""
        self._responses[("pr_jobs", source_branch)] = MockResponse(data=response, error=error)

    # Public interface, recorded

    async def initialize(self) -> bool:
        self._record_call("initialize", (), {})
        return self.is_active

    async def list_pull_requests_for_branch(self, target_branch: str) -> list[PullRequest]:
        self._record_call("list_pull_requests_for_branch", (target_branch,), {})
        return await super().list_pull_requests_for_branch(target_branch)

    async def list_open_pull_requests(self) -> list[PullRequest]:
        self._record_call("list_open_pull_requests", (), {})
        return await super().list_open_pull_requests()

    async def get_jobs_for_branch_latest_commit(self, branch_name: str) -> BranchJobs | None:
        self._record_call("get_jobs_for_branch_latest_commit", (branch_name,), {})
        return await super().get_jobs_for_branch_latest_commit(branch_name)

    async def list_pull_requests_in_branch_since_last_merge(
        self,
        branch_name: str,
        target_branch: str,
        child_branches: list[str],
    ) -> list[PullRequest]:
        self._record_call(
            "list_pull_requests_in_branch_since_last_merge",
            (branch_name, target_branch, list(child_branches)),
            {},
        )
        return await super().list_pull_requests_in_branch_since_last_merge(
            branch_name, target_branch, child_branches
        )

    def get_create_pull_request_url(self, source_branch: str, target_branch: str) -> str | None:
        self._record_call("get_create_pull_request_url", (source_branch, target_branch), {})
        if not self.supports_create_pull_request:
            return None
        return f"{self.repo_info.web_url}/compare/{target_branch}...{source_branch}"

    async def close(self) -> None:
        """No-op for compatibility with real providers."""

    # Hooks

    async def _fetch_open_pull_requests(self) -> list[PullRequest]:
        return list(self._get_response("open", "", []))

    async def _fetch_pull_requests_for_branch(self, target_branch: str) -> list[PullRequest]:
        return list(self._get_response("branch", target_branch, []))

    async def _fetch_merged_pull_requests(self, target_branch: str) -> list[PullRequest]:
        return list(self._get_response("merged", target_branch, []))

    async def _fetch_branch_jobs(self, branch_name: str) -> list[Job]:
        return list(self._get_response("branch_jobs", branch_name, []))

    async def _fetch_pull_request_jobs(self, pull_request: PullRequest) -> list[Job]:
        return list(self._get_response("pr_jobs", pull_request.source_branch, pull_request.jobs))

    def _get_response(self, kind: str, key: str, default: T) -> T:
        """Get configured response or default."""
        resp = self._responses.get((kind, key))
        if resp is None:
            return default
        resp.call_count += 1
        if resp.error:
            raise resp.error
        if resp.data is not None:
            return resp.data
        return default

    # Verification

    def _record_call(
        self,
        method: str,
        args: tuple[Any, ...],
        kwargs: dict[str, Any],
    ) -> None:
        """Record a method call for verification."""
        self._calls.append(MockCall(method=method, args=args, kwargs=kwargs))

    def was_called(self, method: str) -> bool:
        """
        Check if a method was called.

        Args:
            method: Method name (e.g., "list_open_pull_requests")

        Returns:
            True if the method was called at least once
        """
        return any(call.method == method for call in self._calls)

    def call_count(self, method: str) -> int:
        """
        Get the number of times a method was called.

        Args:
            method: Method name (e.g., "get_jobs_for_branch_latest_commit")

        Returns:
            Number of times the method was called
        """
        return sum(1 for call in self._calls if call.method == method)

    def get_calls(self, method: str | None = None) -> list[MockCall]:
        """
        Get recorded calls, optionally filtered by method.

        Args:
            method: Optional method name to filter by

        Returns:
            List of MockCall objects
        """
        if method is None:
            return list(self._calls)
        return [call for call in self._calls if call.method == method]

    def reset(self) -> None:
        """Reset all recorded calls and configured responses."""
        self._calls.clear()
        self._responses.clear()


__all__ = [
    "MockGitProvider",
    "MockCall",
    "MockResponse",
]
