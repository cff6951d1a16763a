"""deliverygraph testing utilities.

Provides a mock git hosting provider, record builders and fixtures for
testing applications that use deliverygraph.
"""

from deliverygraph.testing.fixtures import (
    create_mock_branch,
    create_mock_job,
    create_mock_merged_pull_request,
    create_mock_pull_request,
)
from deliverygraph.testing.mock import MockCall, MockGitProvider, MockResponse

__all__ = [
    # Mock provider
    "MockGitProvider",
    "MockCall",
    "MockResponse",
    # Helper functions
    "create_mock_job",
    "create_mock_pull_request",
    "create_mock_merged_pull_request",
    "create_mock_branch",
]
