"""
Repository detection and provider resolution.

Maps a git remote URL to the hosting vendor and builds the matching
provider, falling back to the inactive provider whenever the vendor cannot
be reached.
"""

import re
from urllib.parse import quote, unquote

from deliverygraph.config import EnvSecretStore, ProviderSettings, SecretStore
from deliverygraph.logging import get_logger, mask_sensitive_data
from deliverygraph.providers.azure import AzureDevOpsProvider
from deliverygraph.providers.base import GitHostingProvider
from deliverygraph.providers.bitbucket import BitbucketProvider
from deliverygraph.providers.gitea import GiteaProvider
from deliverygraph.providers.github import GitHubProvider
from deliverygraph.providers.gitlab import GitLabProvider
from deliverygraph.providers.inactive import InactiveGitProvider
from deliverygraph.types.repos import RepoInfo

logger = get_logger("providers")

PROVIDER_CLASSES: dict[str, type[GitHostingProvider]] = {
    GitLabProvider.provider_name: GitLabProvider,
    GitHubProvider.provider_name: GitHubProvider,
    GiteaProvider.provider_name: GiteaProvider,
    AzureDevOpsProvider.provider_name: AzureDevOpsProvider,
    BitbucketProvider.provider_name: BitbucketProvider,
}

# https://[user@]dev.azure.com/org/project/_git/repo
_AZURE_RE = re.compile(r"^https://(?:[^@/]+@)?([^/]+)/([^/]+)/([^/]+)/_git/([^/]+?)(?:\.git)?/?$")
# https://org.visualstudio.com/project/_git/repo
_AZURE_LEGACY_RE = re.compile(r"^https://(?:[^@/]+@)?([^/]+)/([^/]+)/_git/([^/]+?)(?:\.git)?/?$")
# git@ssh.dev.azure.com:v3/org/project/repo
_AZURE_SSH_RE = re.compile(r"^git@ssh\.dev\.azure\.com:v3/([^/]+)/([^/]+)/([^/]+?)/?$")
# https://[user@]host/path/repo.git, ssh://git@host[:port]/path/repo.git, git@host:path/repo.git
_GENERIC_RE = re.compile(
    r"^(?:https?://(?:[^@/]+@)?|ssh://(?:[^@/]+@)?|[^@/\s]+@)([^/:]+)(?::\d+(?=/))?[/:](.+?)(?:\.git)?/?$"
)


def detect_provider_name(host: str) -> str | None:
    """Guess the hosting vendor from a host name (on-premise hosts included)."""
    host = host.lower()
    if "gitlab" in host:
        return "gitlab"
    if "github" in host:
        return "github"
    if "gitea" in host:
        return "gitea"
    if "dev.azure" in host or "visualstudio" in host or "azure" in host:
        return "azure"
    if "bitbucket" in host:
        return "bitbucket"
    return None


def detect_repo_info(remote_url: str | None) -> RepoInfo | None:
    """
    Parse a git remote URL into repository coordinates.

    Supports HTTPS and SSH remotes, nested GitLab groups and Azure DevOps
    ``_git`` URLs. Path parts are URL-decoded.

    Args:
        remote_url: Fetch URL of the remote

    Returns:
        RepoInfo, or None if the URL or its vendor is not recognized
    """
    if not remote_url:
        return None
    remote_url = remote_url.strip()

    match = _AZURE_RE.match(remote_url)
    if match:
        host, organization, project, repo = match.groups()
        return _azure_repo_info(remote_url, host, unquote(organization), unquote(project), unquote(repo))

    match = _AZURE_SSH_RE.match(remote_url)
    if match:
        organization, project, repo = match.groups()
        return _azure_repo_info(
            remote_url, "dev.azure.com", unquote(organization), unquote(project), unquote(repo)
        )

    match = _AZURE_LEGACY_RE.match(remote_url)
    if match and detect_provider_name(match.group(1)) == "azure":
        host, project, repo = match.groups()
        return RepoInfo(
            provider_name="azure",
            host=host,
            owner=unquote(project),
            repo=unquote(repo),
            remote_url=remote_url,
            web_url=f"https://{host}/{quote(unquote(project), safe='')}/_git/{quote(unquote(repo), safe='')}",
            organization=host.split(".")[0],
        )

    match = _GENERIC_RE.match(remote_url)
    if not match:
        logger.info("Unrecognized git remote URL: %s", mask_sensitive_data(remote_url))
        return None
    host, full_path = match.groups()
    parts = [part for part in full_path.split("/") if part]
    if len(parts) < 2:
        return None
    repo = unquote(parts.pop())
    owner = unquote("/".join(parts))

    provider_name = detect_provider_name(host)
    if provider_name is None:
        logger.info("Unable to map a git provider for host %s", host)
        return None

    return RepoInfo(
        provider_name=provider_name,
        host=host,
        owner=owner,
        repo=repo,
        remote_url=remote_url,
        web_url=f"https://{host}/{owner}/{repo}",
    )


def _azure_repo_info(
    remote_url: str, host: str, organization: str, project: str, repo: str
) -> RepoInfo:
    web_url = "/".join(
        [
            f"https://{host}",
            quote(organization, safe=""),
            quote(project, safe=""),
            "_git",
            quote(repo, safe=""),
        ]
    )
    return RepoInfo(
        provider_name="azure",
        host=host,
        owner=project,
        repo=repo,
        remote_url=remote_url,
        web_url=web_url,
        organization=organization,
    )


def token_key(repo_info: RepoInfo) -> str:
    """Secret key of the API token for a repository host."""
    return f"{repo_info.host_key}_TOKEN"


async def resolve_provider(
    settings: ProviderSettings | None = None,
    secrets: SecretStore | None = None,
) -> GitHostingProvider:
    """
    Build and initialize the provider matching the repository remote.

    Args:
        settings: Provider settings (default: ``ProviderSettings.from_env()``)
        secrets: Where API tokens are read from (default: environment variables)

    Returns:
        An active vendor provider, or an InactiveGitProvider when the remote
        is unknown, no token is stored or the token is rejected

    Raises:
        ConfigurationError: If settings are read from invalid environment values
    """
    settings = settings or ProviderSettings.from_env()
    secrets = secrets or EnvSecretStore()

    repo_info = detect_repo_info(settings.remote_url)
    if repo_info is None:
        return InactiveGitProvider()

    provider_class = PROVIDER_CLASSES[repo_info.provider_name]
    provider = provider_class(
        repo_info=repo_info,
        token=secrets.get_secret(token_key(repo_info)),
        timeout=settings.timeout,
        retry_config=settings.retry_config,
    )
    logger.info(
        "Detected git provider %s (%s), repository %s/%s",
        repo_info.provider_name,
        repo_info.host,
        repo_info.owner,
        repo_info.repo,
    )

    if await provider.initialize():
        return provider

    await provider.close()
    return InactiveGitProvider(repo_info=repo_info, description=provider.describe())
