"""Diagram graph data models."""

from dataclasses import dataclass, field
from typing import Any

from deliverygraph.types.branches import BranchRecord
from deliverygraph.types.pulls import PullRequest
from deliverygraph.types.repos import ProviderDescription

# Node style classes
CLASS_GIT_MAIN = "gitMain"
CLASS_GIT_MAJOR = "gitMajor"
CLASS_GIT_FEATURE = "gitFeature"
CLASS_TARGET_PROD = "salesforceProd"
CLASS_TARGET_MAJOR = "salesforceMajor"
CLASS_TARGET_DEV = "salesforceDev"

# Link types
LINK_MAJOR_MERGE = "majorMerge"
LINK_FEATURE_MERGE = "featureMerge"
LINK_MAJOR_MERGE_ACTIVE = "majorMergeActive"
LINK_FEATURE_MERGE_ACTIVE = "featureMergeActive"
LINK_DEPLOY = "deploy"
LINK_DEPLOY_ACTIVE = "deployActive"
LINK_PUSH_PULL = "pushPull"

MERGE_LINK_TYPES = frozenset(
    {LINK_MAJOR_MERGE, LINK_FEATURE_MERGE, LINK_MAJOR_MERGE_ACTIVE, LINK_FEATURE_MERGE_ACTIVE}
)
DEPLOY_LINK_TYPES = frozenset({LINK_DEPLOY, LINK_DEPLOY_ACTIVE})


@dataclass
class GraphNode:
    """A diagram node: a git branch or a deployment target."""

    node_name: str
    label: str
    style_class: str
    level: int
    branch_name: str
    group: str | None = None
    url: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.node_name,
            "branchName": self.branch_name,
            "label": self.label,
            "type": self.style_class,
            "level": self.level,
            "group": self.group,
        }


@dataclass
class GraphLink:
    """A directed diagram edge between two nodes."""

    source: str
    target: str
    link_type: str
    label: str
    active_pull_request: PullRequest | None = None
    action_url: str | None = None

    def to_dict(self) -> dict[str, Any]:
        pull_request = self.active_pull_request
        return {
            "source": self.source,
            "target": self.target,
            "type": self.link_type,
            "label": self.label,
            "pullRequestNumber": pull_request.number if pull_request else None,
            "pullRequestUrl": pull_request.web_url if pull_request else None,
            "actionUrl": self.action_url,
        }


@dataclass
class PipelineData:
    """Everything the UI needs to display the pipeline."""

    orgs: list[GraphNode]
    links: list[GraphLink]
    diagram_text: str
    diagram_text_major_only: str
    warnings: list[str] = field(default_factory=list)
    branches: list[BranchRecord] = field(default_factory=list)
    pr_button: ProviderDescription | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "orgs": [node.to_dict() for node in self.orgs],
            "links": [link.to_dict() for link in self.links],
            "diagramText": self.diagram_text,
            "diagramTextMajorOnly": self.diagram_text_major_only,
            "warnings": list(self.warnings),
        }
