"""Git hosting providers."""

from deliverygraph.providers.azure import AzureDevOpsProvider
from deliverygraph.providers.base import GitHostingProvider
from deliverygraph.providers.bitbucket import BitbucketProvider
from deliverygraph.providers.detection import (
    PROVIDER_CLASSES,
    detect_provider_name,
    detect_repo_info,
    resolve_provider,
    token_key,
)
from deliverygraph.providers.gitea import GiteaProvider
from deliverygraph.providers.github import GitHubProvider
from deliverygraph.providers.gitlab import GitLabProvider
from deliverygraph.providers.inactive import InactiveGitProvider
from deliverygraph.providers.status import compute_jobs_status

__all__ = [
    "GitHostingProvider",
    "InactiveGitProvider",
    "GitLabProvider",
    "GitHubProvider",
    "GiteaProvider",
    "AzureDevOpsProvider",
    "BitbucketProvider",
    "PROVIDER_CLASSES",
    "compute_jobs_status",
    "detect_provider_name",
    "detect_repo_info",
    "resolve_provider",
    "token_key",
]
