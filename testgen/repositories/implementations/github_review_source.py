import httpx
from typing import List, Optional
import structlog
from testgen.repositories.interfaces.review_source import IReviewSource
from testgen.models.schemas import ChangedFile
from testgen.core.exceptions import UpstreamFetchError
from testgen.config.settings import settings

logger = structlog.get_logger()


class GitHubReviewSource(IReviewSource):
    """GitHub REST API implementation of the review source"""

    def __init__(
        self,
        token: Optional[str] = None,
        api_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.token = token or settings.github_token
        self.base_url = (api_url or settings.github_api_url).rstrip("/")
        self.headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self.token:
            self.headers["Authorization"] = f"Bearer {self.token}"
        self._transport = transport

    async def get_changed_files(
        self, owner: str, repository: str, review_number: int, per_page: int = 100
    ) -> List[ChangedFile]:
        """Fetch one page of changed files; later pages are not requested"""
        url = f"{self.base_url}/repos/{owner}/{repository}/pulls/{review_number}/files"
        review = f"{owner}/{repository}#{review_number}"
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=30.0) as client:
                response = await client.get(url, headers=self.headers, params={"per_page": per_page})
        except httpx.HTTPError as e:
            logger.error("Error fetching pull request files", review=review, error=str(e))
            raise UpstreamFetchError(
                f"Failed to fetch files for pull request {review}: {e}", source="github"
            ) from e

        remaining = response.headers.get("X-RateLimit-Remaining")
        if remaining is not None:
            logger.debug("GitHub rate limit", remaining=remaining, limit=response.headers.get("X-RateLimit-Limit"))

        if response.status_code != 200:
            logger.error(
                "Failed to fetch pull request files",
                review=review,
                status_code=response.status_code,
            )
            raise UpstreamFetchError(
                f"Failed to fetch files for pull request {review}: HTTP {response.status_code}",
                source="github",
                upstream_status=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise UpstreamFetchError(
                f"Failed to fetch files for pull request {review}: response is not JSON", source="github"
            ) from e
        if not isinstance(payload, list):
            raise UpstreamFetchError(
                f"Failed to fetch files for pull request {review}: unexpected response shape", source="github"
            )

        if len(payload) >= per_page:
            logger.warning(
                "Pull request has more changed files than one page, remaining pages are skipped",
                review=review,
                per_page=per_page,
            )

        return [
            ChangedFile(
                path=item.get("filename") or "",
                status=item.get("status") or "",
                raw_patch=item.get("patch") or "",
            )
            for item in payload
            if isinstance(item, dict)
        ]
