#!/usr/bin/env python3
"""
deliverygraph - Render a delivery pipeline diagram

This example builds a classic integration -> uat -> preprod -> main pipeline,
resolves the git hosting provider from the local clone (or from
DELIVERYGRAPH_REMOTE_URL) and prints the Mermaid diagram with live pull
request and CI status when a token is available.

Tokens are read from environment variables named after the host, for
example GITHUB_COM_TOKEN or GITLAB_COM_TOKEN.

Run with: python examples/render_pipeline.py
"""

import asyncio
import logging
import sys

from deliverygraph import (
    BranchConfig,
    ConfigurationError,
    PipelineDataProvider,
    ProjectConfig,
    StaticConfigSource,
    configure_logging,
    resolve_provider,
)


def build_config_source() -> StaticConfigSource:
    """Configuration of the example pipeline."""
    return StaticConfigSource(
        branches=[
            BranchConfig("main", deploy_target_url="https://login.example.com"),
            BranchConfig("preprod", merge_targets=["main"]),
            BranchConfig("uat", merge_targets=["preprod"], alias="acceptance"),
            BranchConfig("integration", merge_targets=["uat"]),
        ],
        project=ProjectConfig(
            manual_actions_file_url="https://docs.example.com/manual-actions.md",
            development_branch="integration",
        ),
    )


async def main() -> int:
    """Resolve the provider and print both diagrams."""
    configure_logging(level=logging.INFO)

    try:
        provider = await resolve_provider()
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    async with provider:
        pipeline = PipelineDataProvider(build_config_source(), provider)
        data = await pipeline.get_pipeline_data(with_fence=True)

    print("=== Full pipeline ===\n")
    print(data.diagram_text)
    print("\n=== Major branches only ===\n")
    print(data.diagram_text_major_only)

    if data.warnings:
        print("\nWarnings:")
        for warning in data.warnings:
            print(f"  - {warning}")

    if data.pr_button:
        print(f"\nPull requests: {data.pr_button.pull_requests_web_url}")

    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
