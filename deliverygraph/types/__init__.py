"""deliverygraph type definitions.

This module exports all data model types used by the package.
"""

from deliverygraph.types.branches import BranchRecord
from deliverygraph.types.graph import GraphLink, GraphNode, PipelineData
from deliverygraph.types.pulls import BranchJobs, Job, PullRequest
from deliverygraph.types.repos import ProviderDescription, RepoInfo

__all__ = [
    # Branch types
    "BranchRecord",
    # Pull request and job types
    "Job",
    "BranchJobs",
    "PullRequest",
    # Repository types
    "RepoInfo",
    "ProviderDescription",
    # Graph types
    "GraphNode",
    "GraphLink",
    "PipelineData",
]
