"""
Pull request enrichment of a branch topology.

Attaches to every branch the CI jobs of its latest commit and the pull
requests merged into it since it was last promoted, completed by the ticket
and pre/post deployment command collaborators.
"""

import asyncio
from typing import Protocol

from deliverygraph.logging import get_logger
from deliverygraph.providers.base import GitHostingProvider
from deliverygraph.topology import BranchTopology
from deliverygraph.types.branches import BranchRecord
from deliverygraph.types.pulls import JOB_UNKNOWN, PullRequest

logger = get_logger("enricher")


class TicketResolver(Protocol):
    """Links pull requests to tracker tickets (writes ``related_tickets``)."""

    async def complete_pull_requests_with_tickets(
        self, pull_requests: list[PullRequest]
    ) -> list[PullRequest]: ...


class PrePostCommandResolver(Protocol):
    """Links pull requests to deployment actions (writes ``deployment_actions``)."""

    async def complete_pull_requests_with_pre_post_commands(
        self, pull_requests: list[PullRequest]
    ) -> list[PullRequest]: ...


class NoTicketResolver:
    """Ticket collaborator used when no tracker is configured."""

    async def complete_pull_requests_with_tickets(
        self, pull_requests: list[PullRequest]
    ) -> list[PullRequest]:
        return pull_requests


class NoPrePostCommandResolver:
    """Pre/post command collaborator used when no catalog is configured."""

    async def complete_pull_requests_with_pre_post_commands(
        self, pull_requests: list[PullRequest]
    ) -> list[PullRequest]:
        return pull_requests


class PullRequestEnricher:
    """
    Enrich branches with provider data.

    Branches are enriched concurrently. A failing branch keeps empty
    enrichment and never affects the others.

    Example:
        ```python
        enricher = PullRequestEnricher(provider)
        await enricher.enrich(topology)
        for branch in topology:
            print(branch.branch_name, branch.jobs_status, branch.pending_pull_requests_count)
        ```
    """

    def __init__(
        self,
        provider: GitHostingProvider,
        tickets: TicketResolver | None = None,
        pre_post_commands: PrePostCommandResolver | None = None,
    ) -> None:
        """
        Args:
            provider: Git hosting provider (inactive providers yield no data)
            tickets: Ticket collaborator (default: no-op)
            pre_post_commands: Pre/post deployment command collaborator (default: no-op)
        """
        self.provider = provider
        self.tickets = tickets or NoTicketResolver()
        self.pre_post_commands = pre_post_commands or NoPrePostCommandResolver()

    async def enrich(self, topology: BranchTopology) -> None:
        """Enrich every branch of the topology in place."""
        results = await asyncio.gather(
            *(self.enrich_branch(branch, topology) for branch in topology),
            return_exceptions=True,
        )
        for branch, result in zip(topology, results):
            if isinstance(result, BaseException):
                logger.warning("Enrichment of branch %s failed: %s", branch.branch_name, result)

    async def enrich_branch(self, branch: BranchRecord, topology: BranchTopology) -> None:
        """
        Enrich one branch: latest commit jobs and pull requests since last merge.

        Each leg fails independently; a failed leg leaves its fields empty.
        """
        jobs_leg, pull_requests_leg = await asyncio.gather(
            self._attach_jobs(branch),
            self._attach_pull_requests(branch, topology),
            return_exceptions=True,
        )
        if isinstance(jobs_leg, BaseException):
            logger.warning("Error fetching jobs for branch %s: %s", branch.branch_name, jobs_leg)
            branch.jobs = []
            branch.jobs_status = JOB_UNKNOWN
        if isinstance(pull_requests_leg, BaseException):
            logger.warning(
                "Error listing pull requests since last merge of branch %s: %s",
                branch.branch_name,
                pull_requests_leg,
            )
            branch.pull_requests_since_last_merge = []

    async def _attach_jobs(self, branch: BranchRecord) -> None:
        branch_jobs = await self.provider.get_jobs_for_branch_latest_commit(branch.branch_name)
        if branch_jobs is None:
            return
        branch.jobs = list(branch_jobs.jobs)
        branch.jobs_status = branch_jobs.jobs_status

    async def _attach_pull_requests(self, branch: BranchRecord, topology: BranchTopology) -> None:
        if not branch.merge_targets:
            return
        pull_requests = await self.provider.list_pull_requests_in_branch_since_last_merge(
            branch.branch_name,
            branch.merge_targets[0],
            topology.children_of(branch.branch_name),
        )
        pull_requests = await self.tickets.complete_pull_requests_with_tickets(pull_requests)
        pull_requests = await self.pre_post_commands.complete_pull_requests_with_pre_post_commands(
            pull_requests
        )
        branch.pull_requests_since_last_merge = pull_requests
