"""
Branch topology: classification of long-lived branches into pipeline roles,
merge-target inference and configuration warnings.
"""

from collections.abc import Iterable

from deliverygraph.config import BranchConfig, ConfigSource, ProjectConfig
from deliverygraph.logging import get_logger
from deliverygraph.types.branches import (
    MAJOR_ORG_TYPES,
    ORG_INTEGRATION,
    ORG_LEVELS,
    ORG_OTHER,
    ORG_PREPROD,
    ORG_PROD,
    ORG_UAT,
    ORG_UATRUN,
    BranchRecord,
)

logger = get_logger("topology")


def classify(branch_name: str) -> str:
    """
    Classify a branch name into a pipeline role.

    Prefix rules, case-insensitive, first match wins:
    ``prod``/``main`` -> prod, ``preprod``/``staging`` -> preprod,
    ``uat``/``recette`` containing ``run`` -> uatrun, other ``uat``/``recette``
    -> uat, ``integ`` -> integration, anything else -> other.
    """
    name = branch_name.lower()
    if name.startswith(("prod", "main")):
        return ORG_PROD
    if name.startswith(("preprod", "staging")):
        return ORG_PREPROD
    if name.startswith(("uat", "recette")):
        return ORG_UATRUN if "run" in name else ORG_UAT
    if name.startswith("integ"):
        return ORG_INTEGRATION
    return ORG_OTHER


def level_for(org_type: str) -> int:
    """Level of a pipeline role (higher is closer to production)."""
    return ORG_LEVELS.get(org_type, ORG_LEVELS[ORG_OTHER])


def guess_merge_targets(org_type: str, all_branch_names: Iterable[str]) -> list[str]:
    """
    Guess merge targets of a branch from its role: the branches one role up.

    preprod -> prod branches, uat/uatrun -> preprod branches,
    integration -> uat branches, prod/other -> none.
    """
    wanted = {
        ORG_PREPROD: ORG_PROD,
        ORG_UAT: ORG_PREPROD,
        ORG_UATRUN: ORG_PREPROD,
        ORG_INTEGRATION: ORG_UAT,
    }.get(org_type)
    if wanted is None:
        return []
    return sorted(name for name in all_branch_names if classify(name) == wanted)


def _unique_targets(branch_name: str, targets: Iterable[str]) -> list[str]:
    result: list[str] = []
    for target in targets:
        if target and target != branch_name and target not in result:
            result.append(target)
    return result


class BranchTopology:
    """Classified branches, sorted by level (desc) then name (asc)."""

    def __init__(self, branches: list[BranchRecord], warnings: list[str] | None = None) -> None:
        self.branches = sorted(branches, key=lambda b: (-b.level, b.branch_name))
        self.warnings = list(warnings or [])
        self._by_name = {branch.branch_name: branch for branch in self.branches}

    def __iter__(self):
        return iter(self.branches)

    def __len__(self) -> int:
        return len(self.branches)

    def get(self, branch_name: str) -> BranchRecord | None:
        return self._by_name.get(branch_name)

    @property
    def branch_names(self) -> list[str]:
        return [branch.branch_name for branch in self.branches]

    @property
    def merge_target_names(self) -> set[str]:
        """Names declared as a merge target by at least one branch."""
        return {target for branch in self.branches for target in branch.merge_targets}

    def is_major_branch(self, branch_name: str) -> bool:
        """A branch is major when it has a pipeline role or is a merge target."""
        return classify(branch_name) in MAJOR_ORG_TYPES or branch_name in self.merge_target_names

    def leaf_branches(self) -> list[BranchRecord]:
        """Branches no other branch merges into."""
        targets = self.merge_target_names
        return [branch for branch in self.branches if branch.branch_name not in targets]

    def children_of(self, branch_name: str) -> list[str]:
        """
        All branches that merge, directly or through other branches, into
        ``branch_name``.

        Cyclic configurations terminate: each branch is visited once and the
        branch itself is never returned.
        """
        visited = {branch_name}
        children: list[str] = []
        pending = [branch_name]
        while pending:
            current = pending.pop(0)
            for branch in self.branches:
                if current in branch.merge_targets and branch.branch_name not in visited:
                    visited.add(branch.branch_name)
                    children.append(branch.branch_name)
                    pending.append(branch.branch_name)
        return children


class BranchTopologyBuilder:
    """
    Build a BranchTopology from configuration records.

    Example:
        ```python
        topology = BranchTopologyBuilder(config_source).build()
        for branch in topology:
            print(branch.branch_name, branch.org_type, branch.merge_targets)
        ```
    """

    def __init__(self, config_source: ConfigSource) -> None:
        self.config_source = config_source

    def build(self) -> BranchTopology:
        """
        Load, classify and sort the branches and compute warnings.

        Raises:
            Whatever the configuration source raises when it cannot be read.
        """
        configs = self.config_source.list_branch_configs()
        all_names = [config.branch_name for config in configs]
        branches = [self._build_branch(config, all_names) for config in configs]
        topology = BranchTopology(branches)

        for branch in topology:
            branch.warnings.extend(self._branch_warnings(branch, topology))

        topology.warnings.extend(
            self._project_warnings(self.config_source.get_project_config(), topology)
        )
        logger.debug(
            "Built topology of %d branches (%d project warnings)",
            len(topology),
            len(topology.warnings),
        )
        return topology

    def _build_branch(self, config: BranchConfig, all_names: list[str]) -> BranchRecord:
        org_type = classify(config.branch_name)
        if config.merge_targets:
            targets = config.merge_targets
        else:
            targets = guess_merge_targets(org_type, all_names)
        return BranchRecord(
            branch_name=config.branch_name,
            org_type=org_type,
            level=level_for(org_type),
            merge_targets=_unique_targets(config.branch_name, targets),
            alias=config.alias,
            deploy_target_url=config.deploy_target_url,
        )

    def _branch_warnings(self, branch: BranchRecord, topology: BranchTopology) -> list[str]:
        warnings: list[str] = []
        name = branch.branch_name

        if (
            branch.org_type != ORG_PROD
            and "training" not in name.lower()
            and not branch.merge_targets
        ):
            message = f"No merge target defined for branch {name}"
            example = self._example_merge_target(branch, topology)
            if example:
                message += f" (for example: {example})"
            warnings.append(message)

        for target in branch.merge_targets:
            if topology.get(target) is None:
                warnings.append(
                    f"Merge target {target} of branch {name} is not a configured branch"
                )

        if not self.config_source.has_key_file(name):
            warnings.append(f"No certificate key file found for branch {name}")

        return warnings

    @staticmethod
    def _example_merge_target(branch: BranchRecord, topology: BranchTopology) -> str | None:
        higher = [b for b in topology if b.level > branch.level]
        if not higher:
            return None
        return min(higher, key=lambda b: (b.level, b.branch_name)).branch_name

    @staticmethod
    def _project_warnings(project: ProjectConfig, topology: BranchTopology) -> list[str]:
        warnings: list[str] = []

        if not project.manual_actions_file_url:
            warnings.append("No manual actions tracking file is defined for the project")

        if project.development_branch and topology.get(project.development_branch) is None:
            warnings.append(
                f"Development branch {project.development_branch} is not a configured branch"
            )

        missing = [
            name for name in project.available_target_branches if topology.get(name) is None
        ]
        if missing:
            warnings.append(
                f"Available target branches not found: {', '.join(missing)}"
            )

        return warnings
