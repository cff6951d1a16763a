"""Null-object provider used when no hosting vendor can be reached."""

from deliverygraph.providers.base import GitHostingProvider
from deliverygraph.types.repos import ProviderDescription, RepoInfo


class InactiveGitProvider(GitHostingProvider):
    """
    Provider that never talks to a remote and answers every query with
    empty data.

    Used when the remote cannot be detected, no token is available or the
    token is rejected. ``description`` keeps the detected vendor's pull
    request page so the UI can still link to it.
    """

    provider_name = "inactive"

    def __init__(
        self,
        repo_info: RepoInfo | None = None,
        description: ProviderDescription | None = None,
    ) -> None:
        super().__init__(repo_info=repo_info)
        self._description = description

    def describe(self) -> ProviderDescription:
        if self._description is not None:
            return self._description
        return ProviderDescription(
            provider_label="",
            pull_request_label="",
            pull_requests_web_url="",
        )

    async def initialize(self) -> bool:
        self.is_active = False
        return False
