"""Bitbucket Cloud provider."""

from typing import Any
from urllib.parse import quote

from deliverygraph.providers.base import GitHostingProvider, parse_datetime
from deliverygraph.providers.status import normalize_bitbucket_state
from deliverygraph.types.pulls import Job, PullRequest

API_URL = "https://api.bitbucket.org/2.0"

# Pipeline trigger of pull request pipelines
PULL_REQUEST_TRIGGER = "PULL_REQUEST"

ALL_STATES = ["OPEN", "MERGED", "DECLINED", "SUPERSEDED"]


def _is_pull_request_pipeline(pipeline: dict[str, Any]) -> bool:
    trigger = pipeline.get("trigger") or {}
    kind = str(trigger.get("name") or trigger.get("type") or "").upper()
    return PULL_REQUEST_TRIGGER in kind


class BitbucketProvider(GitHostingProvider):
    """
    Pull requests and pipelines through the Bitbucket Cloud REST API (2.0).

    ``repo_info.owner`` is the workspace and ``repo_info.repo`` the
    repository slug.
    """

    provider_name = "bitbucket"
    provider_label = "Bitbucket"
    pull_request_label = "Pull Request"
    pull_requests_path = "/pull-requests"

    def _api_base_url(self) -> str:
        return API_URL

    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}

    @property
    def _repository(self) -> str:
        return f"/repositories/{self.repo_info.owner}/{self.repo_info.repo}"

    async def _validate(self) -> None:
        await self.transport.get(self._repository)

    async def _list_pull_requests(self, params: dict[str, Any]) -> list[PullRequest]:
        data = await self.transport.get(
            f"{self._repository}/pullrequests", params={"pagelen": 50, **params}
        )
        return [self._parse_pull_request(item) for item in (data or {}).get("values", [])]

    async def _fetch_open_pull_requests(self) -> list[PullRequest]:
        return await self._list_pull_requests({"state": "OPEN"})

    async def _fetch_pull_requests_for_branch(self, target_branch: str) -> list[PullRequest]:
        return await self._list_pull_requests(
            {"state": ALL_STATES, "q": f'destination.branch.name = "{target_branch}"'}
        )

    async def _fetch_merged_pull_requests(self, target_branch: str) -> list[PullRequest]:
        return await self._list_pull_requests(
            {"state": "MERGED", "q": f'destination.branch.name = "{target_branch}"'}
        )

    async def _list_pipelines(self, ref_name: str) -> list[dict[str, Any]]:
        data = await self.transport.get(
            f"{self._repository}/pipelines/",
            params={"target.ref_name": ref_name, "sort": "-created_on", "pagelen": 10},
        )
        return (data or {}).get("values", [])

    async def _fetch_branch_jobs(self, branch_name: str) -> list[Job]:
        pipelines = [
            p for p in await self._list_pipelines(branch_name) if not _is_pull_request_pipeline(p)
        ]
        if not pipelines:
            return []
        return [self._parse_pipeline(pipelines[0])]

    async def _fetch_pull_request_jobs(self, pull_request: PullRequest) -> list[Job]:
        pipelines = await self._list_pipelines(pull_request.source_branch)
        if pull_request.head_sha:
            matching = [
                p for p in pipelines
                if ((p.get("target") or {}).get("commit") or {}).get("hash") == pull_request.head_sha
            ]
            pipelines = matching or pipelines
        if not pipelines:
            return []
        return [self._parse_pipeline(pipelines[0])]

    def get_create_pull_request_url(self, source_branch: str, target_branch: str) -> str | None:
        if self.repo_info is None or not self.repo_info.web_url:
            return None
        title = f"MAJOR: {source_branch} to {target_branch}"
        return (
            f"{self.repo_info.web_url}/pull-requests/new"
            f"?source={quote(source_branch, safe='')}"
            f"&dest={quote(target_branch, safe='')}"
            f"&title={quote(title, safe='')}"
        )

    def _parse_pull_request(self, data: dict[str, Any]) -> PullRequest:
        state = (data.get("state") or "").lower()
        author = data.get("author") or {}
        links = data.get("links") or {}
        source = data.get("source") or {}
        updated_at = parse_datetime(data.get("updated_on"))
        return PullRequest(
            id=str(data["id"]),
            number=data.get("id"),
            title=data.get("title") or "",
            description=data.get("description") or "",
            state=state,
            web_url=(links.get("html") or {}).get("href") or (links.get("self") or {}).get("href") or "",
            author_label=author.get("display_name") or author.get("username") or "unknown",
            source_branch=(source.get("branch") or {}).get("name") or "",
            target_branch=((data.get("destination") or {}).get("branch") or {}).get("name") or "",
            head_sha=(source.get("commit") or {}).get("hash"),
            created_at=parse_datetime(data.get("created_on")),
            updated_at=updated_at,
            # Bitbucket has no merge date; a merged pull request is last updated by its merge
            merged_at=updated_at if state == "merged" else None,
        )

    @staticmethod
    def _parse_pipeline(data: dict[str, Any]) -> Job:
        target = data.get("target") or {}
        selector = target.get("selector") or {}
        return Job(
            name=selector.get("pattern") or target.get("ref_name") or data.get("uuid") or "pipeline",
            status=normalize_bitbucket_state(data.get("state")),
            web_url=((data.get("links") or {}).get("html") or {}).get("href"),
            updated_at=data.get("completed_on") or data.get("created_on"),
        )
