"""
Pipeline graph construction and Mermaid flowchart emission.

The builder turns classified (and optionally enriched) branches plus the
repository's open pull requests into nodes and links, then emits them as a
Mermaid ``flowchart LR`` block. Output is byte-stable for identical input.
"""

import re
from dataclasses import dataclass, field

from deliverygraph.logging import get_logger
from deliverygraph.providers.base import GitHostingProvider
from deliverygraph.providers.inactive import InactiveGitProvider
from deliverygraph.topology import BranchTopology, classify
from deliverygraph.types.branches import (
    ORG_INTEGRATION,
    ORG_LEVELS,
    ORG_OTHER,
    ORG_PREPROD,
    ORG_PROD,
    BranchRecord,
)
from deliverygraph.types.graph import (
    CLASS_GIT_FEATURE,
    CLASS_GIT_MAIN,
    CLASS_GIT_MAJOR,
    CLASS_TARGET_DEV,
    CLASS_TARGET_MAJOR,
    CLASS_TARGET_PROD,
    DEPLOY_LINK_TYPES,
    LINK_DEPLOY,
    LINK_DEPLOY_ACTIVE,
    LINK_FEATURE_MERGE,
    LINK_FEATURE_MERGE_ACTIVE,
    LINK_MAJOR_MERGE,
    LINK_MAJOR_MERGE_ACTIVE,
    LINK_PUSH_PULL,
    MERGE_LINK_TYPES,
    GraphLink,
    GraphNode,
)
from deliverygraph.types.pulls import (
    IN_PROGRESS_STATUSES,
    JOB_FAILED,
    JOB_PENDING,
    JOB_RUNNING,
    JOB_SUCCESS,
    PullRequest,
)

logger = get_logger("graph")

INIT_HEADER = (
    "%%{init: {'theme': 'base', 'flowchart': {'htmlLabels': true, 'curve': 'basis'}}}%%"
)

BRANCHES_SUBGRAPH = "GitBranches"
TARGETS_SUBGRAPH = "SalesforceOrgs"
DEV_TARGETS_SUBGRAPH_PREFIX = "SalesforceDevOrgs"

STATUS_EMOJIS = {
    JOB_RUNNING: "🔄",
    JOB_PENDING: "⏳",
    JOB_SUCCESS: "✅",
    JOB_FAILED: "❌",
}
UNKNOWN_STATUS_EMOJI = "❔"

RETROFIT_LABEL = "Retrofit from RUN to BUILD"

# Hosts shared by every org: no click-through
GENERIC_LOGIN_HOSTS = ("login.salesforce.com", "test.salesforce.com")

CLASS_DEFS = {
    CLASS_TARGET_DEV: "fill:#F4F6F9,stroke:#E5E5E5,stroke-width:1.5px,color:#3E3E3C,font-weight:400,border-radius:14px;",
    CLASS_TARGET_MAJOR: "fill:#E3FCEF,stroke:#E5E5E5,stroke-width:1.5px,color:#032D60,font-weight:600,border-radius:14px;",
    CLASS_TARGET_PROD: "fill:#FFF6E3,stroke:#E5E5E5,stroke-width:1.5px,color:#032D60,font-weight:700,border-radius:14px;",
    CLASS_GIT_MAJOR: "fill:#EAF5FE,stroke:#0176D3,stroke-width:2.5px,color:#032D60,font-weight:700,border-radius:14px;",
    CLASS_GIT_MAIN: "fill:#0176D3,stroke:#032D60,stroke-width:3px,color:#fff,font-weight:900,border-radius:14px;",
    CLASS_GIT_FEATURE: "fill:#fff,stroke:#E5E5E5,stroke-width:1.5px,color:#3E3E3C,font-weight:400,border-radius:14px;",
}

SUBGRAPH_STYLE = "fill:#F0F6FB,color:#3E3E3C,stroke:#E5E5E5,stroke-width:1.5px;"
DEV_SUBGRAPH_STYLE = "fill:#EBF6FF,color:#000000,stroke:#0077B5,stroke-width:1px;"

_ANIMATED = "stroke-dasharray:9 5,stroke-dashoffset:900,animation:dash 25s linear infinite;"

LINK_STYLES = {
    LINK_MAJOR_MERGE: "stroke:#0176D3,stroke-width:1.5px,color:#B0B7BD,opacity:1;",
    LINK_MAJOR_MERGE_ACTIVE: "stroke:#0176D3,stroke-width:2.5px,color:#B0B7BD,opacity:1," + _ANIMATED,
    LINK_FEATURE_MERGE: "stroke:#B0B7BD,stroke-width:1.5px,color:#B0B7BD,opacity:1;",
    LINK_FEATURE_MERGE_ACTIVE: "stroke:#B0B7BD,stroke-width:2px,color:#B0B7BD,opacity:1," + _ANIMATED,
    LINK_DEPLOY: "stroke:#04844B,stroke-width:1.5px,color:#B0B7BD,opacity:1;",
    LINK_DEPLOY_ACTIVE: "stroke:#04844B,stroke-width:2.5px,color:#B0B7BD,opacity:1," + _ANIMATED,
    LINK_PUSH_PULL: "stroke:#0176D3,stroke-width:1.5px,color:#B0B7BD,opacity:1;",
}

_INVALID_NODE_CHARS = re.compile(r"[^a-zA-Z0-9_-]")
_UNDERSCORE_RUNS = re.compile(r"_+")
_TARGET_URL_NOISE = re.compile(r"https?://|\.sandbox\.my\.salesforce\.com|\.my\.salesforce\.com")


def sanitize_node_name(name: str) -> str:
    """
    Make a diagram-safe node identifier.

    Characters outside ``[a-zA-Z0-9_-]`` become ``_``, runs of ``_`` collapse,
    leading/trailing ``_`` are trimmed and empty results become ``unknown``.

    >>> sanitize_node_name("feature/ABC-123")
    'feature_ABC-123'
    """
    cleaned = _UNDERSCORE_RUNS.sub("_", _INVALID_NODE_CHARS.sub("_", name or ""))
    return cleaned.strip("_") or "unknown"


def status_emoji(jobs_status: str | None) -> str:
    """Emoji shown in link labels for an aggregated jobs status."""
    return STATUS_EMOJIS.get(jobs_status or "", UNKNOWN_STATUS_EMOJI)


def escape_label(label: str) -> str:
    """Escape a label for use inside a quoted Mermaid label."""
    return label.replace('"', "#quot;")


def clean_target_url(url: str) -> str:
    """
    Short display form of a deployment target URL.

    >>> clean_target_url("https://acme--uat.sandbox.my.salesforce.com/")
    'acme--uat'
    """
    label = _TARGET_URL_NOISE.sub("", url).rstrip("/")
    for suffix in (".sandbox", ".my", ".salesforce"):
        label = label.removesuffix(suffix)
    return label


def is_generic_login_url(url: str) -> bool:
    return any(host in url for host in GENERIC_LOGIN_HOSTS)


@dataclass
class BuildOptions:
    """Diagram build options."""

    with_fence: bool = False  # wrap in a ```mermaid code block
    only_major_branches: bool = False
    show_dev_targets: bool = True  # developer targets next to feature branches
    show_retrofit_link: bool = True  # prod -> integration back-merge


@dataclass
class GraphBuildResult:
    """Nodes, links and emitted diagram lines of one build."""

    nodes: list[GraphNode]
    links: list[GraphLink]
    lines: list[str]
    warnings: list[str] = field(default_factory=list)

    @property
    def text(self) -> str:
        return "\n".join(self.lines)


@dataclass
class _Graph:
    branch_nodes: list[GraphNode] = field(default_factory=list)
    target_nodes: list[GraphNode] = field(default_factory=list)
    dev_target_nodes: list[GraphNode] = field(default_factory=list)
    merge_links: list[GraphLink] = field(default_factory=list)
    deploy_links: list[GraphLink] = field(default_factory=list)
    push_pull_links: list[GraphLink] = field(default_factory=list)
    retrofit_links: list[GraphLink] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def nodes(self) -> list[GraphNode]:
        return [*self.branch_nodes, *self.target_nodes, *self.dev_target_nodes]

    @property
    def links(self) -> list[GraphLink]:
        return [*self.merge_links, *self.deploy_links, *self.push_pull_links, *self.retrofit_links]


class PipelineGraphBuilder:
    """
    Build the pipeline diagram of a branch topology.

    Example:
        ```python
        builder = PipelineGraphBuilder(topology, open_pull_requests, provider)
        full = builder.build()
        major_only = builder.build(BuildOptions(only_major_branches=True))
        print(full.text)
        ```
    """

    def __init__(
        self,
        topology: BranchTopology | list[BranchRecord],
        open_pull_requests: list[PullRequest] | None = None,
        provider: GitHostingProvider | None = None,
    ) -> None:
        """
        Args:
            topology: Classified branches (a list is sorted like a topology)
            open_pull_requests: Open pull requests of the repository
            provider: Provider used for "Create PR" actions (default: inactive)
        """
        if not isinstance(topology, BranchTopology):
            topology = BranchTopology(list(topology))
        self.topology = topology
        self.open_pull_requests = list(open_pull_requests or [])
        self.provider = provider or InactiveGitProvider()

    def build(self, options: BuildOptions | None = None) -> GraphBuildResult:
        """
        Build nodes and links and emit the diagram.

        Args:
            options: Build options (default: full diagram, no fence)

        Returns:
            GraphBuildResult with the surviving nodes, links and diagram lines
        """
        options = options or BuildOptions()
        graph = self._build_graph(options)
        if options.only_major_branches:
            graph = self._major_only(graph)

        lines = self._emit(graph)
        if options.with_fence:
            lines = ["```mermaid", *lines, "```"]
        return GraphBuildResult(
            nodes=graph.nodes,
            links=graph.links,
            lines=lines,
            warnings=list(graph.warnings),
        )

    # Graph construction

    def _build_graph(self, options: BuildOptions) -> _Graph:
        graph = _Graph()
        used_names: set[str] = set()
        branch_node_names: dict[str, str] = {}

        def unique_name(name: str) -> str:
            base = sanitize_node_name(name)
            candidate, index = base, 2
            while candidate in used_names:
                candidate = f"{base}_{index}"
                index += 1
            used_names.add(candidate)
            return candidate

        for branch in self.topology:
            node = GraphNode(
                node_name=unique_name(f"{branch.branch_name}Branch"),
                label=self._branch_label(branch),
                style_class=CLASS_GIT_MAIN if branch.org_type == ORG_PROD else CLASS_GIT_MAJOR,
                level=branch.level,
                branch_name=branch.branch_name,
            )
            branch_node_names[branch.branch_name] = node.node_name
            graph.branch_nodes.append(node)

        for branch in self.topology:
            for target in branch.merge_targets:
                target_node = branch_node_names.get(target)
                if target_node is None:
                    graph.warnings.append(
                        f"Merge link {branch.branch_name} -> {target} skipped: unknown branch {target}"
                    )
                    continue
                graph.merge_links.append(
                    self._merge_link(
                        branch.branch_name,
                        target,
                        branch_node_names[branch.branch_name],
                        target_node,
                    )
                )

        if options.show_retrofit_link:
            retrofit = self._retrofit_link(branch_node_names)
            if retrofit is not None:
                graph.retrofit_links.append(retrofit)

        self._add_feature_branches(graph, branch_node_names, unique_name, options)

        for branch in self.topology:
            if not branch.deploy_target_url:
                continue
            url = branch.deploy_target_url
            node = GraphNode(
                node_name=unique_name(f"{branch.branch_name}Target"),
                label=branch.alias or clean_target_url(url),
                style_class=CLASS_TARGET_PROD if branch.org_type == ORG_PROD else CLASS_TARGET_MAJOR,
                level=branch.level,
                branch_name=branch.branch_name,
                group=branch.branch_name,
                url=None if is_generic_login_url(url) else url,
            )
            graph.target_nodes.append(node)
            graph.deploy_links.append(
                GraphLink(
                    source=branch_node_names[branch.branch_name],
                    target=node.node_name,
                    link_type=LINK_DEPLOY_ACTIVE if branch.jobs_status in IN_PROGRESS_STATUSES else LINK_DEPLOY,
                    label=f"Deploy {status_emoji(branch.jobs_status)}",
                )
            )

        return graph

    def _branch_label(self, branch: BranchRecord) -> str:
        count = branch.pending_pull_requests_count
        if count > 1:
            return f"{branch.branch_name} ({count})"
        return branch.branch_name

    def _find_open_pull_request(self, source: str, target: str) -> PullRequest | None:
        for pr in self.open_pull_requests:
            if pr.source_branch == source and pr.target_branch == target:
                return pr
        return None

    def _merge_link(self, source: str, target: str, source_node: str, target_node: str) -> GraphLink:
        major = self.topology.is_major_branch(source) or self.topology.is_major_branch(target)
        pull_request = self._find_open_pull_request(source, target)

        if pull_request is not None:
            active = pull_request.jobs_status in IN_PROGRESS_STATUSES
            if major:
                link_type = LINK_MAJOR_MERGE_ACTIVE if active else LINK_MAJOR_MERGE
            else:
                link_type = LINK_FEATURE_MERGE_ACTIVE if active else LINK_FEATURE_MERGE
            number = pull_request.number if pull_request.number is not None else pull_request.id
            return GraphLink(
                source=source_node,
                target=target_node,
                link_type=link_type,
                label=f"#{number} {status_emoji(pull_request.jobs_status)}",
                active_pull_request=pull_request,
            )

        link_type = LINK_MAJOR_MERGE if major else LINK_FEATURE_MERGE
        action_url = None
        if not self.provider.is_active:
            label = "Merge"
        else:
            action_url = self.provider.get_create_pull_request_url(source, target)
            label = "Create PR" if action_url else "No PR"
        return GraphLink(
            source=source_node,
            target=target_node,
            link_type=link_type,
            label=label,
            action_url=action_url,
        )

    def _retrofit_link(self, branch_node_names: dict[str, str]) -> GraphLink | None:
        """
        Back-merge link from production to the integration branch.

        Left out when two or more branches merge into a preprod branch, as
        the extra edge then tangles the layout.
        """
        merging_into_preprod = [
            branch for branch in self.topology
            if any(classify(target) == ORG_PREPROD for target in branch.merge_targets)
        ]
        if len(merging_into_preprod) >= 2:
            return None

        first_of: dict[str, str] = {}
        for branch in self.topology:
            first_of.setdefault(branch.org_type, branch.branch_name)
        if not all(org in first_of for org in (ORG_PROD, ORG_PREPROD, ORG_INTEGRATION)):
            return None

        return GraphLink(
            source=branch_node_names[first_of[ORG_PROD]],
            target=branch_node_names[first_of[ORG_INTEGRATION]],
            link_type=LINK_MAJOR_MERGE,
            label=RETROFIT_LABEL,
        )

    def _feature_level(self) -> int:
        leaves = self.topology.leaf_branches()
        if not leaves:
            return ORG_LEVELS[ORG_OTHER] - 1
        return min(branch.level for branch in leaves) - 1

    def _add_feature_branches(self, graph, branch_node_names, unique_name, options) -> None:
        orphans: dict[str, list[PullRequest]] = {}
        for pr in self.open_pull_requests:
            if self.topology.get(pr.source_branch) is None:
                orphans.setdefault(pr.source_branch, []).append(pr)

        level = self._feature_level()
        for source in sorted(orphans):
            pull_requests = sorted(orphans[source], key=lambda pr: (pr.target_branch, pr.id))
            known = [pr for pr in pull_requests if pr.target_branch in branch_node_names]
            for pr in pull_requests:
                if pr.target_branch not in branch_node_names:
                    graph.warnings.append(
                        f"Pull request {pr.source_branch} -> {pr.target_branch} skipped: "
                        f"unknown branch {pr.target_branch}"
                    )
            if not known:
                continue

            node = GraphNode(
                node_name=unique_name(f"{source}Branch"),
                label=source,
                style_class=CLASS_GIT_FEATURE,
                level=level,
                branch_name=source,
                group=known[0].target_branch,
            )
            graph.branch_nodes.append(node)
            for pr in known:
                graph.merge_links.append(
                    self._merge_link(source, pr.target_branch, node.node_name, branch_node_names[pr.target_branch])
                )

            if options.show_dev_targets:
                dev_node = GraphNode(
                    node_name=unique_name(f"{source}Target"),
                    label=f"Dev {source}",
                    style_class=CLASS_TARGET_DEV,
                    level=level,
                    branch_name=source,
                    group=node.group,
                )
                graph.dev_target_nodes.append(dev_node)
                graph.push_pull_links.append(
                    GraphLink(
                        source=dev_node.node_name,
                        target=node.node_name,
                        link_type=LINK_PUSH_PULL,
                        label="Push / Pull",
                    )
                )

    @staticmethod
    def _major_only(graph: _Graph) -> _Graph:
        branch_nodes = [
            node for node in graph.branch_nodes if node.style_class in (CLASS_GIT_MAIN, CLASS_GIT_MAJOR)
        ]
        kept_branches = {node.node_name for node in branch_nodes}
        target_nodes = [
            node for node in graph.target_nodes
            if node.style_class in (CLASS_TARGET_PROD, CLASS_TARGET_MAJOR)
        ]
        kept_targets = {node.node_name for node in target_nodes}
        return _Graph(
            branch_nodes=branch_nodes,
            target_nodes=target_nodes,
            merge_links=[
                link for link in graph.merge_links
                if link.source in kept_branches and link.target in kept_branches
            ],
            deploy_links=[link for link in graph.deploy_links if link.target in kept_targets],
            retrofit_links=[
                link for link in graph.retrofit_links
                if link.source in kept_branches and link.target in kept_branches
            ],
            warnings=list(graph.warnings),
        )

    # Emission

    def _emit(self, graph: _Graph) -> list[str]:
        lines = [INIT_HEADER, "flowchart LR", ""]
        used_classes: set[str] = set()
        used_subgraphs: list[tuple[str, str]] = []

        def subgraph(name: str, title: str, nodes: list[GraphNode], style: str, rounded: bool) -> None:
            lines.append(f"  subgraph {name} [{title}]")
            lines.append("    direction TB")
            for node in nodes:
                label = escape_label(node.label)
                shape = f'(["{label}"])' if rounded else f'["{label}"]'
                lines.append(f"    {node.node_name}{shape}:::{node.style_class}")
                if node.url:
                    lines.append(f'    click {node.node_name} "{node.url}" _blank')
                used_classes.add(node.style_class)
            lines.append("  end")
            lines.append("")
            used_subgraphs.append((name, style))

        subgraph(BRANCHES_SUBGRAPH, "Major Git Branches", graph.branch_nodes, SUBGRAPH_STYLE, rounded=False)
        if graph.target_nodes:
            subgraph(TARGETS_SUBGRAPH, "Major Salesforce Orgs", graph.target_nodes, SUBGRAPH_STYLE, rounded=True)

        groups: dict[str, list[GraphNode]] = {}
        for node in graph.dev_target_nodes:
            groups.setdefault(node.group or "", []).append(node)
        for group in sorted(groups):
            subgraph(
                sanitize_node_name(f"{DEV_TARGETS_SUBGRAPH_PREFIX}{group}"),
                "Salesforce Dev Orgs",
                groups[group],
                DEV_SUBGRAPH_STYLE,
                rounded=True,
            )

        for links in (graph.merge_links, graph.deploy_links, graph.push_pull_links, graph.retrofit_links):
            if not links:
                continue
            lines.extend(f"  {self._link_line(link)}" for link in links)
            lines.append("")

        for class_name, definition in CLASS_DEFS.items():
            if class_name in used_classes:
                lines.append(f"classDef {class_name} {definition}")
        for name, style in used_subgraphs:
            lines.append(f"style {name} {style}")

        positions: dict[str, list[str]] = {}
        for index, link in enumerate(graph.links):
            positions.setdefault(link.link_type, []).append(str(index))
        for link_type, style in LINK_STYLES.items():
            if link_type in positions:
                lines.append(f"linkStyle {','.join(positions[link_type])} {style}")

        return lines

    @staticmethod
    def _link_line(link: GraphLink) -> str:
        if link.action_url:
            label = f"<a href='{link.action_url}' target='_blank'>{escape_label(link.label)}</a>"
        else:
            label = escape_label(link.label)

        if link.link_type == LINK_PUSH_PULL:
            return f"{link.source} <-. {label} .-> {link.target}"
        if link.link_type in DEPLOY_LINK_TYPES:
            return f'{link.source} -.->|"{label}"| {link.target}'
        if link.link_type in (LINK_MAJOR_MERGE, LINK_MAJOR_MERGE_ACTIVE):
            return f'{link.source} ==>|"{label}"| {link.target}'
        if link.link_type in MERGE_LINK_TYPES:
            return f'{link.source} -->|"{label}"| {link.target}'
        raise ValueError(f"Unknown link type: {link.link_type}")
