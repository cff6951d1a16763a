"""Azure DevOps provider (dev.azure.com, visualstudio.com and Azure DevOps Server)."""

import base64
from typing import Any
from urllib.parse import quote

from deliverygraph.providers.base import GitHostingProvider, parse_datetime
from deliverygraph.providers.status import normalize_azure_status
from deliverygraph.types.pulls import Job, PullRequest

API_VERSION = "7.0"

# Build reason of pull request validation builds
PULL_REQUEST_REASON = "pullRequest"

_STATES = {"active": "open", "completed": "merged", "abandoned": "declined"}


def _strip_ref(ref: str | None) -> str:
    return (ref or "").removeprefix("refs/heads/")


class AzureDevOpsProvider(GitHostingProvider):
    """
    Pull requests and builds through the Azure DevOps REST API.

    ``repo_info.owner`` is the project and ``repo_info.organization`` the
    organization (collection) of the repository.
    """

    provider_name = "azure"
    provider_label = "Azure DevOps"
    pull_request_label = "Pull Request"
    pull_requests_path = "/pullrequests"

    def _api_base_url(self) -> str:
        host = self.repo_info.host
        organization = self.repo_info.organization
        if organization and "visualstudio.com" not in host:
            return f"https://{host}/{quote(organization, safe='')}"
        return f"https://{host}"

    def _auth_headers(self) -> dict[str, str]:
        credentials = base64.b64encode(f":{self.token}".encode()).decode()
        return {"Authorization": f"Basic {credentials}"}

    @property
    def _project(self) -> str:
        return f"/{quote(self.repo_info.owner, safe='')}/_apis"

    @property
    def _repository(self) -> str:
        return f"{self._project}/git/repositories/{quote(self.repo_info.repo, safe='')}"

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        return await self.transport.get(path, params={"api-version": API_VERSION, **(params or {})})

    async def _validate(self) -> None:
        await self._get(self._repository)

    async def _list_pull_requests(self, params: dict[str, Any]) -> list[PullRequest]:
        data = await self._get(f"{self._repository}/pullrequests", params={"$top": 100, **params})
        return [self._parse_pull_request(item) for item in (data or {}).get("value", [])]

    async def _fetch_open_pull_requests(self) -> list[PullRequest]:
        return await self._list_pull_requests({"searchCriteria.status": "active"})

    async def _fetch_pull_requests_for_branch(self, target_branch: str) -> list[PullRequest]:
        return await self._list_pull_requests(
            {
                "searchCriteria.status": "all",
                "searchCriteria.targetRefName": f"refs/heads/{target_branch}",
            }
        )

    async def _fetch_merged_pull_requests(self, target_branch: str) -> list[PullRequest]:
        return await self._list_pull_requests(
            {
                "searchCriteria.status": "completed",
                "searchCriteria.targetRefName": f"refs/heads/{target_branch}",
            }
        )

    async def _list_builds(self, ref: str) -> list[dict[str, Any]]:
        data = await self._get(
            f"{self._project}/build/builds",
            params={"branchName": ref, "$top": 10, "queryOrder": "queueTimeDescending"},
        )
        return (data or {}).get("value", [])

    async def _fetch_branch_jobs(self, branch_name: str) -> list[Job]:
        builds = [
            build for build in await self._list_builds(f"refs/heads/{branch_name}")
            if build.get("reason") != PULL_REQUEST_REASON
        ]
        if not builds:
            return []
        return [self._parse_build(builds[0])]

    async def _fetch_pull_request_jobs(self, pull_request: PullRequest) -> list[Job]:
        builds = await self._list_builds(f"refs/pull/{pull_request.number}/merge")
        if not builds:
            return []
        return [self._parse_build(builds[0])]

    def get_create_pull_request_url(self, source_branch: str, target_branch: str) -> str | None:
        if self.repo_info is None or not self.repo_info.web_url:
            return None
        return (
            f"{self.repo_info.web_url}/pullrequestcreate"
            f"?sourceRef={quote(source_branch, safe='')}&targetRef={quote(target_branch, safe='')}"
        )

    def _parse_pull_request(self, data: dict[str, Any]) -> PullRequest:
        pr_id = data.get("pullRequestId") or data.get("id")
        state = (data.get("status") or "").lower()
        created_by = data.get("createdBy") or {}
        web_url = ((data.get("_links") or {}).get("web") or {}).get("href")
        if not web_url and self.repo_info is not None:
            web_url = f"{self.repo_info.web_url}/pullrequest/{pr_id}"
        state = _STATES.get(state, state)
        closed_at = parse_datetime(data.get("closedDate"))
        return PullRequest(
            id=str(pr_id),
            number=pr_id,
            title=data.get("title") or "",
            description=data.get("description") or "",
            state=state,
            web_url=web_url or "",
            author_label=created_by.get("displayName") or created_by.get("uniqueName") or "unknown",
            source_branch=_strip_ref(data.get("sourceRefName")),
            target_branch=_strip_ref(data.get("targetRefName")),
            head_sha=(data.get("lastMergeSourceCommit") or {}).get("commitId"),
            created_at=parse_datetime(data.get("creationDate")),
            merged_at=closed_at if state == "merged" else None,
        )

    @staticmethod
    def _parse_build(data: dict[str, Any]) -> Job:
        definition = data.get("definition") or {}
        return Job(
            name=definition.get("name") or data.get("buildNumber") or str(data.get("id", "")),
            status=normalize_azure_status(data.get("status"), data.get("result")),
            web_url=((data.get("_links") or {}).get("web") or {}).get("href"),
            updated_at=data.get("finishTime") or data.get("queueTime"),
        )
