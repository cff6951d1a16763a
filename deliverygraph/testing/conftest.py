"""
Pytest plugin for deliverygraph testing fixtures.

This module re-exports all fixtures from fixtures.py so they can be
automatically discovered by pytest when this package is installed.

To use these fixtures in your tests, add this to your conftest.py:

    pytest_plugins = ["deliverygraph.testing.conftest"]

Or import the fixtures directly:

    from deliverygraph.testing.fixtures import mock_provider, sample_config_source
"""

# Re-export all fixtures for pytest auto-discovery
from deliverygraph.testing.fixtures import (
    inactive_mock_provider,
    mock_provider,
    sample_branch_configs,
    sample_config_source,
    sample_job,
    sample_project_config,
    sample_pull_request,
)

__all__ = [
    "mock_provider",
    "inactive_mock_provider",
    "sample_branch_configs",
    "sample_project_config",
    "sample_config_source",
    "sample_pull_request",
    "sample_job",
]
