"""GitLab provider (gitlab.com and self-managed instances)."""

from typing import Any
from urllib.parse import quote

from deliverygraph.providers.base import GitHostingProvider, logger, parse_datetime
from deliverygraph.providers.status import normalize_gitlab_status
from deliverygraph.types.pulls import Job, PullRequest

# Pipeline source of merge request pipelines
MERGE_REQUEST_SOURCE = "merge_request_event"

_STATES = {"opened": "open", "locked": "closed"}


class GitLabProvider(GitHostingProvider):
    """Merge requests and pipelines through the GitLab REST API (v4)."""

    provider_name = "gitlab"
    provider_label = "GitLab"
    pull_request_label = "Merge Request"
    pull_requests_path = "/-/merge_requests"

    project_id: int | None = None

    def _api_base_url(self) -> str:
        return f"https://{self.repo_info.host}/api/v4"

    def _auth_headers(self) -> dict[str, str]:
        return {"PRIVATE-TOKEN": self.token}

    @property
    def project_path(self) -> str:
        """Full project path, nested groups included."""
        return f"{self.repo_info.owner}/{self.repo_info.repo}"

    @property
    def _project(self) -> str:
        return f"/projects/{self.project_id or quote(self.project_path, safe='')}"

    async def _validate(self) -> None:
        await self.transport.get("/user")
        project = await self.transport.get(f"/projects/{quote(self.project_path, safe='')}")
        self.project_id = project["id"]
        logger.debug("GitLab project %s has id %s", self.project_path, self.project_id)

    async def _list_merge_requests(self, params: dict[str, Any]) -> list[PullRequest]:
        data = await self.transport.get(
            f"{self._project}/merge_requests", params={"per_page": 100, **params}
        )
        return [self._parse_merge_request(item) for item in data or []]

    async def _fetch_open_pull_requests(self) -> list[PullRequest]:
        return await self._list_merge_requests({"state": "opened"})

    async def _fetch_pull_requests_for_branch(self, target_branch: str) -> list[PullRequest]:
        return await self._list_merge_requests({"target_branch": target_branch})

    async def _fetch_merged_pull_requests(self, target_branch: str) -> list[PullRequest]:
        return await self._list_merge_requests(
            {"target_branch": target_branch, "state": "merged", "order_by": "updated_at"}
        )

    async def _fetch_branch_jobs(self, branch_name: str) -> list[Job]:
        pipelines = await self.transport.get(
            f"{self._project}/pipelines", params={"ref": branch_name, "per_page": 10}
        )
        pipelines = [p for p in pipelines or [] if p.get("source") != MERGE_REQUEST_SOURCE]
        if not pipelines:
            return []
        return [self._parse_pipeline(pipelines[0])]

    async def _fetch_pull_request_jobs(self, pull_request: PullRequest) -> list[Job]:
        if not pull_request.head_sha:
            return []
        pipelines = await self.transport.get(
            f"{self._project}/pipelines", params={"sha": pull_request.head_sha}
        )
        return [self._parse_pipeline(p) for p in pipelines or []]

    def get_create_pull_request_url(self, source_branch: str, target_branch: str) -> str | None:
        if self.repo_info is None or not self.repo_info.web_url:
            return None
        return (
            f"{self.repo_info.web_url}/-/merge_requests/new"
            f"?merge_request[source_branch]={quote(source_branch, safe='')}"
            f"&merge_request[target_branch]={quote(target_branch, safe='')}"
        )

    def _parse_merge_request(self, data: dict[str, Any]) -> PullRequest:
        state = (data.get("state") or "").lower()
        author = data.get("author") or {}
        return PullRequest(
            id=str(data["id"]),
            number=data.get("iid"),
            title=data.get("title") or "",
            description=data.get("description") or "",
            state=_STATES.get(state, state),
            web_url=data.get("web_url") or "",
            author_label=author.get("username") or author.get("name") or "unknown",
            source_branch=data.get("source_branch") or "",
            target_branch=data.get("target_branch") or "",
            head_sha=data.get("sha"),
            created_at=parse_datetime(data.get("created_at")),
            updated_at=parse_datetime(data.get("updated_at")),
            merged_at=parse_datetime(data.get("merged_at")),
        )

    @staticmethod
    def _parse_pipeline(data: dict[str, Any]) -> Job:
        return Job(
            name=data.get("ref") or data.get("sha") or str(data.get("id", "")),
            status=normalize_gitlab_status(data.get("status")),
            web_url=data.get("web_url"),
            updated_at=data.get("updated_at"),
        )
