"""Branch (pipeline environment) data models."""

from dataclasses import dataclass, field

from deliverygraph.types.pulls import JOB_UNKNOWN, Job, PullRequest

# Pipeline roles, from production down
ORG_PROD = "prod"
ORG_PREPROD = "preprod"
ORG_UATRUN = "uatrun"
ORG_UAT = "uat"
ORG_INTEGRATION = "integration"
ORG_OTHER = "other"

ORG_TYPES = (ORG_PROD, ORG_PREPROD, ORG_UATRUN, ORG_UAT, ORG_INTEGRATION, ORG_OTHER)

ORG_LEVELS = {
    ORG_PROD: 100,
    ORG_PREPROD: 90,
    ORG_UATRUN: 80,
    ORG_UAT: 70,
    ORG_INTEGRATION: 50,
    ORG_OTHER: 40,
}

# Roles that make a branch "major" on their own
MAJOR_ORG_TYPES = frozenset(
    {ORG_PROD, ORG_PREPROD, ORG_UATRUN, ORG_UAT, ORG_INTEGRATION}
)


@dataclass
class BranchRecord:
    """A long-lived pipeline branch and its deployment target."""

    branch_name: str
    org_type: str
    level: int
    merge_targets: list[str] = field(default_factory=list)
    alias: str | None = None
    deploy_target_url: str | None = None
    warnings: list[str] = field(default_factory=list)
    jobs: list[Job] = field(default_factory=list)
    jobs_status: str = JOB_UNKNOWN
    pull_requests_since_last_merge: list[PullRequest] | None = None

    @property
    def pending_pull_requests_count(self) -> int:
        """Number of pull requests merged in this branch and not yet promoted."""
        return len(self.pull_requests_since_last_merge or [])
