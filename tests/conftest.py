"""Shared fixtures for the deliverygraph test suite."""

from deliverygraph.testing.conftest import (  # noqa: F401
    inactive_mock_provider,
    mock_provider,
    sample_branch_configs,
    sample_config_source,
    sample_job,
    sample_project_config,
    sample_pull_request,
)
