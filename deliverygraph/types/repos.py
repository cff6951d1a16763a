"""Remote repository data models."""

from dataclasses import dataclass


@dataclass
class RepoInfo:
    """Remote repository coordinates, as detected from a git remote URL."""

    provider_name: str  # "gitlab", "github", "gitea", "azure", "bitbucket"
    host: str
    owner: str  # group path, GitHub owner, Bitbucket workspace, Azure project
    repo: str
    remote_url: str
    web_url: str
    organization: str | None = None  # Azure DevOps organization

    @property
    def host_key(self) -> str:
        """Host as a secret-key prefix, e.g. "GITLAB_COMPANY_COM"."""
        return self.host.replace(".", "_").replace("-", "_").upper()


@dataclass
class ProviderDescription:
    """How a provider names and exposes its pull requests."""

    provider_label: str
    pull_request_label: str
    pull_requests_web_url: str
