"""GitHub provider (github.com and GitHub Enterprise Server)."""

from typing import Any
from urllib.parse import quote

from deliverygraph.providers.base import GitHostingProvider, parse_datetime
from deliverygraph.providers.status import normalize_github_status
from deliverygraph.types.pulls import Job, PullRequest

# Workflow run events that belong to pull requests rather than to the branch
PULL_REQUEST_EVENTS = frozenset({"pull_request", "pull_request_target"})


class GitHubProvider(GitHostingProvider):
    """Pull requests and GitHub Actions runs through the GitHub REST API."""

    provider_name = "github"
    provider_label = "GitHub"
    pull_request_label = "Pull Request"
    pull_requests_path = "/pulls"

    def _api_base_url(self) -> str:
        host = self.repo_info.host
        if host == "github.com":
            return "https://api.github.com"
        return f"https://{host}/api/v3"

    def _auth_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Accept": "application/vnd.github+json",
        }

    @property
    def _repo_path(self) -> str:
        return f"/repos/{self.repo_info.owner}/{self.repo_info.repo}"

    async def _validate(self) -> None:
        await self.transport.get("/user")

    async def _list_pulls(self, params: dict[str, Any]) -> list[PullRequest]:
        data = await self.transport.get(f"{self._repo_path}/pulls", params={"per_page": 100, **params})
        return [self._parse_pull_request(item) for item in data or []]

    async def _fetch_open_pull_requests(self) -> list[PullRequest]:
        return await self._list_pulls({"state": "open"})

    async def _fetch_pull_requests_for_branch(self, target_branch: str) -> list[PullRequest]:
        return await self._list_pulls({"state": "all", "base": target_branch})

    async def _fetch_merged_pull_requests(self, target_branch: str) -> list[PullRequest]:
        pull_requests = await self._list_pulls(
            {"state": "closed", "base": target_branch, "sort": "updated", "direction": "desc"}
        )
        return [pr for pr in pull_requests if pr.merged_at is not None]

    async def _list_runs(self, branch_name: str) -> list[dict[str, Any]]:
        data = await self.transport.get(
            f"{self._repo_path}/actions/runs",
            params={"branch": branch_name, "per_page": 10},
        )
        return (data or {}).get("workflow_runs", [])

    async def _list_run_jobs(self, run_id: int) -> list[Job]:
        data = await self.transport.get(f"{self._repo_path}/actions/runs/{run_id}/jobs")
        return [self._parse_job(item) for item in (data or {}).get("jobs", [])]

    async def _fetch_branch_jobs(self, branch_name: str) -> list[Job]:
        runs = [
            run for run in await self._list_runs(branch_name)
            if run.get("event") not in PULL_REQUEST_EVENTS
        ]
        if not runs:
            return []
        return await self._list_run_jobs(runs[0]["id"])

    async def _fetch_pull_request_jobs(self, pull_request: PullRequest) -> list[Job]:
        runs = await self._list_runs(pull_request.source_branch)
        if not runs:
            return []
        matching = [run for run in runs if run.get("head_sha") == pull_request.head_sha]
        run = matching[0] if matching else runs[0]
        return await self._list_run_jobs(run["id"])

    def get_create_pull_request_url(self, source_branch: str, target_branch: str) -> str | None:
        if self.repo_info is None or not self.repo_info.web_url:
            return None
        return (
            f"{self.repo_info.web_url}/compare/"
            f"{quote(target_branch, safe='')}...{quote(source_branch, safe='')}?expand=1"
        )

    def _parse_pull_request(self, data: dict[str, Any]) -> PullRequest:
        """Parse pull request data from API response."""
        merged_at = parse_datetime(data.get("merged_at"))
        state = (data.get("state") or "").lower()
        if state == "closed" and merged_at is not None:
            state = "merged"
        user = data.get("user") or {}
        head = data.get("head") or {}
        return PullRequest(
            id=str(data["id"]),
            number=data.get("number"),
            title=data.get("title") or "",
            description=data.get("body") or "",
            state=state,
            web_url=data.get("html_url") or "",
            author_label=user.get("login") or user.get("name") or "unknown",
            source_branch=head.get("ref") or "",
            target_branch=(data.get("base") or {}).get("ref") or "",
            head_sha=head.get("sha"),
            created_at=parse_datetime(data.get("created_at")),
            updated_at=parse_datetime(data.get("updated_at")),
            merged_at=merged_at,
        )

    def _parse_job(self, data: dict[str, Any]) -> Job:
        return Job(
            name=data.get("name") or str(data.get("id", "")),
            status=normalize_github_status(data.get("status"), data.get("conclusion")),
            web_url=data.get("html_url"),
            updated_at=data.get("completed_at") or data.get("started_at"),
        )
