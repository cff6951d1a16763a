"""deliverygraph - Delivery pipeline diagrams with live pull request and CI status."""

from deliverygraph.config import (
    BranchConfig,
    EnvSecretStore,
    ProjectConfig,
    ProviderSettings,
    StaticConfigSource,
)
from deliverygraph.enricher import PullRequestEnricher
from deliverygraph.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConfigurationError,
    ConflictError,
    DeliveryGraphError,
    NotFoundError,
    RateLimitedError,
    ServerError,
    ValidationError,
)
from deliverygraph.git import GitHelper, GitRemote
from deliverygraph.graph_builder import BuildOptions, PipelineGraphBuilder, sanitize_node_name
from deliverygraph.logging import configure_logging, get_logger
from deliverygraph.pipeline import PipelineDataProvider
from deliverygraph.providers import (
    GitHostingProvider,
    InactiveGitProvider,
    compute_jobs_status,
    detect_repo_info,
    resolve_provider,
)
from deliverygraph.topology import BranchTopology, BranchTopologyBuilder, classify
from deliverygraph.transport import AsyncHTTPTransport, RetryConfig

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Orchestration
    "PipelineDataProvider",
    # Topology
    "BranchTopology",
    "BranchTopologyBuilder",
    "classify",
    # Providers
    "GitHostingProvider",
    "InactiveGitProvider",
    "compute_jobs_status",
    "detect_repo_info",
    "resolve_provider",
    # Enrichment
    "PullRequestEnricher",
    # Graph
    "PipelineGraphBuilder",
    "BuildOptions",
    "sanitize_node_name",
    # Configuration
    "BranchConfig",
    "ProjectConfig",
    "StaticConfigSource",
    "EnvSecretStore",
    "ProviderSettings",
    # Git Helper
    "GitHelper",
    "GitRemote",
    # Exceptions
    "DeliveryGraphError",
    "AuthenticationError",
    "AuthorizationError",
    "NotFoundError",
    "ConflictError",
    "RateLimitedError",
    "ValidationError",
    "ServerError",
    "ConfigurationError",
    # Transport
    "AsyncHTTPTransport",
    "RetryConfig",
    # Logging
    "configure_logging",
    "get_logger",
]
