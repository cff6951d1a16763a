"""
Pipeline data orchestration.

Loads the topology, enriches it from the git hosting provider, builds the
diagrams and packs everything the UI needs into a PipelineData result.
"""

import asyncio

from deliverygraph.config import ConfigSource
from deliverygraph.enricher import PrePostCommandResolver, PullRequestEnricher, TicketResolver
from deliverygraph.graph_builder import BuildOptions, PipelineGraphBuilder
from deliverygraph.logging import get_logger
from deliverygraph.providers.base import GitHostingProvider
from deliverygraph.providers.inactive import InactiveGitProvider
from deliverygraph.topology import BranchTopology, BranchTopologyBuilder
from deliverygraph.types.graph import PipelineData
from deliverygraph.types.pulls import PullRequest
from deliverygraph.types.repos import ProviderDescription

logger = get_logger("pipeline")

ERROR_PLACEHOLDER = "Error generating pipeline diagram."


class PipelineDataProvider:
    """
    Produce the pipeline diagram and its data.

    This is the only layer that turns failures into a user-facing result:
    any error while building yields the placeholder diagram with the error
    message as a warning.

    Example:
        ```python
        provider = await resolve_provider()
        pipeline = PipelineDataProvider(config_source, provider)
        data = await pipeline.get_pipeline_data()
        print(data.diagram_text)
        ```
    """

    def __init__(
        self,
        config_source: ConfigSource,
        provider: GitHostingProvider | None = None,
        tickets: TicketResolver | None = None,
        pre_post_commands: PrePostCommandResolver | None = None,
    ) -> None:
        """
        Args:
            config_source: Branch and project configuration
            provider: Git hosting provider (default: inactive)
            tickets: Ticket collaborator for pending pull requests
            pre_post_commands: Pre/post deployment command collaborator
        """
        self.config_source = config_source
        self.provider = provider or InactiveGitProvider()
        self.enricher = PullRequestEnricher(self.provider, tickets, pre_post_commands)

    async def get_pipeline_data(
        self, fetch_remote: bool = True, with_fence: bool = False
    ) -> PipelineData:
        """
        Build the pipeline data.

        Args:
            fetch_remote: Query the git hosting provider for pull requests and
                jobs. When False only the configuration is used.
            with_fence: Wrap diagram texts in a ```mermaid code block

        Returns:
            PipelineData (the placeholder result if building failed)
        """
        try:
            return await self._build(fetch_remote, with_fence)
        except Exception as e:
            logger.exception("Pipeline diagram generation failed")
            return PipelineData(
                orgs=[],
                links=[],
                diagram_text=ERROR_PLACEHOLDER,
                diagram_text_major_only=ERROR_PLACEHOLDER,
                warnings=[f"Error generating pipeline diagram: {e}"],
                pr_button=self.pr_button(),
            )

    def pr_button(self) -> ProviderDescription | None:
        """Pull request page of the provider, if it has one."""
        description = self.provider.describe()
        if not description.pull_requests_web_url:
            return None
        return description

    async def _build(self, fetch_remote: bool, with_fence: bool) -> PipelineData:
        topology = BranchTopologyBuilder(self.config_source).build()

        open_pull_requests: list[PullRequest] = []
        if fetch_remote:
            open_pull_requests = await self._fetch_remote(topology)

        builder = PipelineGraphBuilder(topology, open_pull_requests, self.provider)
        full = builder.build(BuildOptions(with_fence=with_fence))
        major_only = builder.build(BuildOptions(with_fence=with_fence, only_major_branches=True))

        warnings = list(topology.warnings)
        for branch in topology:
            warnings.extend(branch.warnings)
        warnings.extend(full.warnings)

        logger.info(
            "Built pipeline diagram: %d nodes, %d links, %d warnings",
            len(full.nodes),
            len(full.links),
            len(warnings),
        )
        return PipelineData(
            orgs=full.nodes,
            links=full.links,
            diagram_text=full.text,
            diagram_text_major_only=major_only.text,
            warnings=warnings,
            branches=topology.branches,
            pr_button=self.pr_button(),
        )

    async def _fetch_remote(self, topology: BranchTopology) -> list[PullRequest]:
        open_pull_requests, enrichment = await asyncio.gather(
            self.provider.list_open_pull_requests(),
            self.enricher.enrich(topology),
            return_exceptions=True,
        )
        if isinstance(enrichment, BaseException):
            logger.warning("Branch enrichment failed: %s", enrichment)
        if isinstance(open_pull_requests, BaseException):
            logger.warning("Error listing open pull requests: %s", open_pull_requests)
            return []
        return open_pull_requests
