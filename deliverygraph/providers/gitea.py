"""Gitea provider, through Gitea's GitHub-compatible REST API."""

from typing import Any
from urllib.parse import quote

from deliverygraph.providers.github import GitHubProvider
from deliverygraph.providers.status import normalize_commit_status
from deliverygraph.types.pulls import Job, PullRequest


class GiteaProvider(GitHubProvider):
    """
    Gitea repositories.

    Pull request payloads match GitHub's. CI state comes from commit statuses,
    which every Gitea CI integration (Actions, Drone, Woodpecker) reports.
    The pull request list endpoint has no base-branch filter, so target
    filtering happens client-side.
    """

    provider_name = "gitea"
    provider_label = "Gitea"

    def _api_base_url(self) -> str:
        return f"https://{self.repo_info.host}/api/v1"

    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"token {self.token}"}

    async def _list_pulls(self, params: dict[str, Any]) -> list[PullRequest]:
        base = params.pop("base", None)
        params.pop("direction", None)
        if params.get("sort") == "updated":
            params["sort"] = "recentupdate"
        data = await self.transport.get(f"{self._repo_path}/pulls", params={"limit": 50, **params})
        pull_requests = [self._parse_pull_request(item) for item in data or []]
        if base is not None:
            pull_requests = [pr for pr in pull_requests if pr.target_branch == base]
        return pull_requests

    async def _list_statuses(self, ref: str) -> list[Job]:
        data = await self.transport.get(
            f"{self._repo_path}/commits/{quote(ref, safe='')}/statuses",
            params={"limit": 50},
        )
        jobs: dict[str, Job] = {}
        # Newest first; keep the latest status per context
        for item in data or []:
            name = item.get("context") or str(item.get("id", ""))
            if name in jobs:
                continue
            jobs[name] = Job(
                name=name,
                status=normalize_commit_status(item.get("status") or item.get("state")),
                web_url=item.get("target_url"),
                updated_at=item.get("updated_at"),
            )
        return list(jobs.values())

    async def _fetch_branch_jobs(self, branch_name: str) -> list[Job]:
        return await self._list_statuses(branch_name)

    async def _fetch_pull_request_jobs(self, pull_request: PullRequest) -> list[Job]:
        return await self._list_statuses(pull_request.head_sha or pull_request.source_branch)

    def get_create_pull_request_url(self, source_branch: str, target_branch: str) -> str | None:
        if self.repo_info is None or not self.repo_info.web_url:
            return None
        return (
            f"{self.repo_info.web_url}/compare/"
            f"{quote(target_branch, safe='')}...{quote(source_branch, safe='')}"
        )
