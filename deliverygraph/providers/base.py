"""
Git hosting provider base class.

A provider wraps one remote repository on one hosting vendor. Public methods
are the same for every vendor; subclasses only implement the ``_fetch_*``
hooks that talk to their REST API.
"""

import asyncio
import re
from datetime import datetime, timezone
from typing import Any

from deliverygraph.exceptions import DeliveryGraphError
from deliverygraph.logging import get_logger
from deliverygraph.providers.status import compute_jobs_status
from deliverygraph.transport import AsyncHTTPTransport, RetryConfig
from deliverygraph.types.pulls import BranchJobs, Job, PullRequest
from deliverygraph.types.repos import ProviderDescription, RepoInfo

logger = get_logger("providers")

_FRACTION_RE = re.compile(r"\.(\d{6})\d+")
_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def parse_datetime(value: str | None) -> datetime | None:
    """
    Parse an ISO 8601 timestamp returned by a vendor API.

    Fractional seconds beyond microseconds are truncated and naive values are
    taken as UTC.
    """
    if not value:
        return None
    text = _FRACTION_RE.sub(r".\1", value.replace("Z", "+00:00"))
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class GitHostingProvider:
    """
    Capability interface over a remote git hosting vendor.

    Providers start inactive; ``initialize()`` validates the token and
    activates them. An inactive provider answers every query with empty data,
    so callers never need to check for provider presence.

    Example:
        ```python
        provider = GitLabProvider(repo_info, token="glpat-...")
        if await provider.initialize():
            open_prs = await provider.list_open_pull_requests()
        await provider.close()
        ```
    """

    provider_name = ""
    provider_label = ""
    pull_request_label = "Pull Request"
    pull_requests_path = "/pulls"

    def __init__(
        self,
        repo_info: RepoInfo | None = None,
        token: str | None = None,
        timeout: float = 30.0,
        retry_config: RetryConfig | None = None,
        transport: AsyncHTTPTransport | None = None,
    ) -> None:
        """
        Args:
            repo_info: Detected remote repository
            token: API token for the vendor
            timeout: Request timeout in seconds
            retry_config: Retry behavior of the HTTP transport
            transport: Pre-built transport (tests inject one with a mocked client)
        """
        self.repo_info = repo_info
        self.token = token
        self.timeout = timeout
        self.retry_config = retry_config
        self.is_active = False
        self._transport = transport

    @property
    def transport(self) -> AsyncHTTPTransport:
        """HTTP transport to the vendor API, created on first use."""
        if self._transport is None:
            self._transport = AsyncHTTPTransport(
                base_url=self._api_base_url(),
                headers=self._auth_headers(),
                timeout=self.timeout,
                retry_config=self.retry_config,
            )
        return self._transport

    async def close(self) -> None:
        """Release the HTTP transport."""
        if self._transport is not None:
            await self._transport.close()

    async def __aenter__(self) -> "GitHostingProvider":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    def describe(self) -> ProviderDescription:
        """How this vendor names and exposes its pull requests."""
        web_url = self.repo_info.web_url if self.repo_info else ""
        return ProviderDescription(
            provider_label=self.provider_label,
            pull_request_label=self.pull_request_label,
            pull_requests_web_url=f"{web_url}{self.pull_requests_path}" if web_url else "",
        )

    async def initialize(self) -> bool:
        """
        Validate the token against the vendor API and activate the provider.

        Returns:
            True if the provider is active
        """
        self.is_active = False
        if not self.token or self.repo_info is None:
            logger.info("No %s token available, provider stays inactive", self.provider_label)
            return False
        try:
            await self._validate()
        except DeliveryGraphError as e:
            logger.warning("%s access check failed: %s", self.provider_label, e)
            return False
        self.is_active = True
        logger.info(
            "Connected to %s repository %s/%s",
            self.provider_label,
            self.repo_info.owner,
            self.repo_info.repo,
        )
        return True

    async def list_pull_requests_for_branch(self, target_branch: str) -> list[PullRequest]:
        """
        List pull requests targeting a branch, with their jobs.

        Args:
            target_branch: Branch the pull requests merge into

        Returns:
            Pull requests in any state
        """
        if not self.is_active:
            return []
        pull_requests = await self._fetch_pull_requests_for_branch(target_branch)
        await self._attach_jobs(pull_requests)
        return pull_requests

    async def list_open_pull_requests(self) -> list[PullRequest]:
        """List open pull requests of the repository, with their jobs."""
        if not self.is_active:
            return []
        pull_requests = await self._fetch_open_pull_requests()
        await self._attach_jobs(pull_requests)
        return pull_requests

    async def get_jobs_for_branch_latest_commit(self, branch_name: str) -> BranchJobs | None:
        """
        Get the CI jobs of the latest commit-triggered run on a branch.

        Runs triggered by pull requests are ignored.

        Returns:
            Jobs and their aggregated status, or None on an inactive provider
        """
        if not self.is_active:
            return None
        jobs = await self._fetch_branch_jobs(branch_name)
        return BranchJobs(jobs=jobs, jobs_status=self.compute_jobs_status(jobs))

    def get_create_pull_request_url(self, source_branch: str, target_branch: str) -> str | None:
        """Web URL that opens the vendor's "new pull request" form, if any."""
        return None

    async def list_pull_requests_in_branch_since_last_merge(
        self,
        branch_name: str,
        target_branch: str,
        child_branches: list[str],
    ) -> list[PullRequest]:
        """
        List pull requests merged into a branch (or its child branches) since
        the branch was last merged into its target.

        Promotion pull requests between the branch and its children are left
        out, so only work items remain.

        Args:
            branch_name: Branch whose pending content is listed
            target_branch: Branch it is promoted to
            child_branches: Branches merging (transitively) into ``branch_name``

        Returns:
            Pull requests, most recently merged first
        """
        if not self.is_active:
            return []

        promotions = await self._fetch_merged_pull_requests(target_branch)
        last_merge = max(
            (
                pr.merged_at
                for pr in promotions
                if pr.source_branch == branch_name and pr.merged_at is not None
            ),
            default=None,
        )

        scope = [branch_name, *child_branches]
        batches = await asyncio.gather(*(self._merged_into(name) for name in scope))

        excluded = set(scope)
        seen: set[str] = set()
        pull_requests: list[PullRequest] = []
        for batch in batches:
            for pr in batch:
                if pr.id in seen or pr.source_branch in excluded:
                    continue
                if last_merge is not None and (pr.merged_at is None or pr.merged_at <= last_merge):
                    continue
                seen.add(pr.id)
                pull_requests.append(pr)

        pull_requests.sort(key=lambda pr: (pr.merged_at or _EPOCH, pr.id), reverse=True)
        logger.debug(
            "%d pull requests in %s since last merge into %s",
            len(pull_requests),
            branch_name,
            target_branch,
        )
        return pull_requests

    async def _merged_into(self, branch_name: str) -> list[PullRequest]:
        # one unreadable branch must not hide the others
        try:
            return await self._fetch_merged_pull_requests(branch_name)
        except DeliveryGraphError as e:
            logger.warning("Error listing pull requests merged into %s: %s", branch_name, e)
            return []

    def compute_jobs_status(self, jobs: list[Job] | None) -> str:
        """Aggregate job statuses (see ``status.compute_jobs_status``)."""
        return compute_jobs_status(jobs)

    async def _attach_jobs(self, pull_requests: list[PullRequest]) -> None:
        async def attach(pr: PullRequest) -> None:
            try:
                pr.jobs = await self._fetch_pull_request_jobs(pr)
            except DeliveryGraphError as e:
                logger.warning("Error fetching jobs for pull request #%s: %s", pr.number, e)
                return
            pr.jobs_status = self.compute_jobs_status(pr.jobs)

        await asyncio.gather(*(attach(pr) for pr in pull_requests))

    # Vendor hooks

    def _api_base_url(self) -> str:
        raise NotImplementedError

    def _auth_headers(self) -> dict[str, str]:
        return {}

    async def _validate(self) -> None:
        raise NotImplementedError

    async def _fetch_open_pull_requests(self) -> list[PullRequest]:
        return []

    async def _fetch_pull_requests_for_branch(self, target_branch: str) -> list[PullRequest]:
        return []

    async def _fetch_merged_pull_requests(self, target_branch: str) -> list[PullRequest]:
        """Merged pull requests targeting ``target_branch``, ``merged_at`` set."""
        return []

    async def _fetch_branch_jobs(self, branch_name: str) -> list[Job]:
        return []

    async def _fetch_pull_request_jobs(self, pull_request: PullRequest) -> list[Job]:
        return []
