"""
Tests for branch classification, merge-target inference and topology warnings.

Feature: branch-topology
"""

from hypothesis import given, settings
from hypothesis import strategies as st

from deliverygraph.config import BranchConfig, ProjectConfig, StaticConfigSource
from deliverygraph.topology import (
    BranchTopology,
    BranchTopologyBuilder,
    classify,
    guess_merge_targets,
    level_for,
)
from deliverygraph.types.branches import (
    ORG_INTEGRATION,
    ORG_LEVELS,
    ORG_OTHER,
    ORG_PREPROD,
    ORG_PROD,
    ORG_TYPES,
    ORG_UAT,
    ORG_UATRUN,
)

suffix_strategy = st.text(
    alphabet=st.sampled_from("abcdefghijklmnopqrstuvwxyz0123456789-_/"),
    max_size=20,
)

CLEAN_PROJECT = ProjectConfig(manual_actions_file_url="https://docs.example.com/actions.xlsx")


def build(*branches: BranchConfig, project: ProjectConfig = CLEAN_PROJECT, key_files=None):
    return BranchTopologyBuilder(StaticConfigSource(branches, project, key_files)).build()


@given(
    prefix=st.sampled_from(["main", "MAIN", "prod", "Production"]),
    suffix=suffix_strategy,
)
@settings(max_examples=100)
def test_property_prod_prefixes(prefix: str, suffix: str) -> None:
    """Any branch starting with main or prod is production, whatever follows."""
    assert classify(prefix + suffix) == ORG_PROD


@given(suffix=suffix_strategy)
@settings(max_examples=100)
def test_property_uat_run_detection(suffix: str) -> None:
    """uat/recette branches are uatrun exactly when their name contains "run"."""
    for prefix in ("uat", "Recette"):
        name = prefix + suffix
        expected = ORG_UATRUN if "run" in name.lower() else ORG_UAT
        assert classify(name) == expected


@given(name=st.text(max_size=30))
@settings(max_examples=100)
def test_property_classification_is_total(name: str) -> None:
    """Every name gets a known role and the level of that role."""
    org_type = classify(name)

    assert org_type in ORG_TYPES
    assert level_for(org_type) == ORG_LEVELS[org_type]


class TestClassify:
    """Prefix rules of the pipeline roles."""

    def test_known_prefixes(self) -> None:
        assert classify("preprod") == ORG_PREPROD
        assert classify("staging-eu") == ORG_PREPROD
        assert classify("uat") == ORG_UAT
        assert classify("uatrun") == ORG_UATRUN
        assert classify("recette-run") == ORG_UATRUN
        assert classify("integration") == ORG_INTEGRATION
        assert classify("integ2") == ORG_INTEGRATION

    def test_preprod_is_not_prod(self) -> None:
        assert classify("preprod") != ORG_PROD

    def test_unknown_names_are_other(self) -> None:
        assert classify("develop") == ORG_OTHER
        assert classify("feature/login") == ORG_OTHER
        assert classify("") == ORG_OTHER

    def test_levels(self) -> None:
        assert level_for(ORG_PROD) == 100
        assert level_for(ORG_PREPROD) == 90
        assert level_for(ORG_UATRUN) == 80
        assert level_for(ORG_UAT) == 70
        assert level_for(ORG_INTEGRATION) == 50
        assert level_for(ORG_OTHER) == 40
        assert level_for("unheard-of") == 40


class TestGuessMergeTargets:
    """Merge targets inferred one role up."""

    NAMES = ["main", "preprod", "uat", "uat2", "uatrun", "integration", "develop"]

    def test_one_role_up(self) -> None:
        assert guess_merge_targets(ORG_PREPROD, self.NAMES) == ["main"]
        assert guess_merge_targets(ORG_UAT, self.NAMES) == ["preprod"]
        assert guess_merge_targets(ORG_UATRUN, self.NAMES) == ["preprod"]
        assert guess_merge_targets(ORG_INTEGRATION, self.NAMES) == ["uat", "uat2"]

    def test_top_and_other_have_no_guess(self) -> None:
        assert guess_merge_targets(ORG_PROD, self.NAMES) == []
        assert guess_merge_targets(ORG_OTHER, self.NAMES) == []

    def test_missing_role_yields_nothing(self) -> None:
        assert guess_merge_targets(ORG_PREPROD, ["preprod", "uat"]) == []


class TestBranchTopologyBuilder:
    """Building topologies from configuration records."""

    def test_classic_pipeline(self) -> None:
        topology = build(
            BranchConfig("integration"),
            BranchConfig("uat"),
            BranchConfig("main"),
            BranchConfig("preprod"),
        )

        assert topology.branch_names == ["main", "preprod", "uat", "integration"]
        assert topology.get("main").merge_targets == []
        assert topology.get("preprod").merge_targets == ["main"]
        assert topology.get("uat").merge_targets == ["preprod"]
        assert topology.get("integration").merge_targets == ["uat"]
        assert topology.warnings == []
        assert all(branch.warnings == [] for branch in topology)

    def test_sorted_by_level_then_name(self) -> None:
        topology = build(
            BranchConfig("uat2", merge_targets=["main"]),
            BranchConfig("uat1", merge_targets=["main"]),
            BranchConfig("main"),
        )

        assert topology.branch_names == ["main", "uat1", "uat2"]
        assert [b.level for b in topology] == [100, 70, 70]

    def test_explicit_targets_win_over_guess(self) -> None:
        topology = build(
            BranchConfig("main"),
            BranchConfig("preprod"),
            BranchConfig("uat", merge_targets=["main"]),
        )

        assert topology.get("uat").merge_targets == ["main"]

    def test_empty_explicit_targets_fall_back_to_guess(self) -> None:
        topology = build(BranchConfig("main"), BranchConfig("preprod", merge_targets=[]))

        assert topology.get("preprod").merge_targets == ["main"]

    def test_self_and_duplicate_targets_removed(self) -> None:
        topology = build(
            BranchConfig("main"),
            BranchConfig("preprod", merge_targets=["preprod", "main", "main"]),
        )

        assert topology.get("preprod").merge_targets == ["main"]

    def test_missing_merge_target_warning_with_example(self) -> None:
        topology = build(BranchConfig("main"), BranchConfig("uat"), BranchConfig("develop"))

        develop = topology.get("develop")
        assert develop.warnings == [
            "No merge target defined for branch develop (for example: uat)"
        ]
        # uat has no preprod to guess
        assert topology.get("uat").warnings == [
            "No merge target defined for branch uat (for example: main)"
        ]

    def test_missing_merge_target_warning_without_higher_branch(self) -> None:
        topology = build(BranchConfig("develop"))

        assert topology.get("develop").warnings == ["No merge target defined for branch develop"]

    def test_training_and_prod_branches_need_no_target(self) -> None:
        topology = build(BranchConfig("main"), BranchConfig("training-sandbox"))

        assert topology.get("main").warnings == []
        assert topology.get("training-sandbox").warnings == []

    def test_unknown_explicit_target_is_kept_and_reported(self) -> None:
        topology = build(BranchConfig("main"), BranchConfig("uat", merge_targets=["release"]))

        uat = topology.get("uat")
        assert uat.merge_targets == ["release"]
        assert uat.warnings == ["Merge target release of branch uat is not a configured branch"]

    def test_missing_key_file_warning(self) -> None:
        topology = build(
            BranchConfig("main"),
            BranchConfig("preprod"),
            key_files=["main"],
        )

        assert topology.get("main").warnings == []
        assert topology.get("preprod").warnings == [
            "No certificate key file found for branch preprod"
        ]

    def test_project_warnings(self) -> None:
        topology = build(
            BranchConfig("main"),
            project=ProjectConfig(
                development_branch="develop",
                available_target_branches=["main", "uat", "integration"],
            ),
        )

        assert topology.warnings == [
            "No manual actions tracking file is defined for the project",
            "Development branch develop is not a configured branch",
            "Available target branches not found: uat, integration",
        ]

    def test_empty_configuration(self) -> None:
        topology = build()

        assert len(topology) == 0
        assert topology.warnings == []


class TestBranchTopology:
    """Graph queries over a built topology."""

    def test_children_of_is_transitive(self) -> None:
        topology = build(
            BranchConfig("main"),
            BranchConfig("preprod"),
            BranchConfig("uat"),
            BranchConfig("integration"),
        )

        assert topology.children_of("main") == ["preprod", "uat", "integration"]
        assert topology.children_of("uat") == ["integration"]
        assert topology.children_of("integration") == []

    def test_children_of_terminates_on_cycles(self) -> None:
        topology = build(
            BranchConfig("alpha", merge_targets=["beta"]),
            BranchConfig("beta", merge_targets=["alpha"]),
        )

        assert topology.children_of("alpha") == ["beta"]
        assert topology.children_of("beta") == ["alpha"]

    def test_major_branches(self) -> None:
        topology = build(
            BranchConfig("main"),
            BranchConfig("develop", merge_targets=["main"]),
            BranchConfig("hotfix", merge_targets=["develop"]),
        )

        assert topology.is_major_branch("main")
        assert topology.is_major_branch("develop")  # merge target
        assert not topology.is_major_branch("hotfix")
        assert topology.is_major_branch("integration")  # role, even when unconfigured

    def test_leaf_branches(self) -> None:
        topology = build(
            BranchConfig("main"),
            BranchConfig("preprod"),
            BranchConfig("uat"),
        )

        assert [b.branch_name for b in topology.leaf_branches()] == ["uat"]

    def test_topology_from_records(self, sample_config_source) -> None:
        topology = BranchTopologyBuilder(sample_config_source).build()
        rebuilt = BranchTopology(list(reversed(topology.branches)))

        assert rebuilt.branch_names == topology.branch_names
        assert rebuilt.get("integration").alias == "Integration Sandbox"
