import httpx
from typing import Optional, Dict, Any
import structlog
from testgen.repositories.interfaces.jira_service import IJiraService
from testgen.core.exceptions import UpstreamFetchError
from testgen.config.settings import settings

logger = structlog.get_logger()

TICKET_FIELDS = "summary,description,subtasks,issuelinks,status,comment,issuetype"


class AtlassianJiraService(IJiraService):
    """Atlassian JIRA Cloud implementation of JIRA service"""

    def __init__(
        self,
        base_url: Optional[str] = None,
        username: Optional[str] = None,
        api_token: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url or settings.jira_base_url
        self.username = username or settings.jira_username
        self.api_token = api_token or settings.jira_api_token
        self.auth = (self.username, self.api_token) if self.username and self.api_token else None
        self._transport = transport

    async def fetch_ticket(self, ticket_key: str) -> Dict[str, Any]:
        """Get the raw JIRA issue, including its ADF description"""
        if not self._is_configured():
            logger.warning("JIRA service not configured")
            raise UpstreamFetchError(
                f"Failed to fetch JIRA ticket {ticket_key}: JIRA service not configured",
                source="jira",
            )

        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=30.0) as client:
                response = await client.get(
                    f"{self.base_url.rstrip('/')}/rest/api/3/issue/{ticket_key}",
                    params={"fields": TICKET_FIELDS},
                    auth=self.auth,
                    headers={"Accept": "application/json"},
                )
        except httpx.HTTPError as e:
            logger.error("Error getting JIRA issue", issue_key=ticket_key, error=str(e))
            raise UpstreamFetchError(
                f"Failed to fetch JIRA ticket {ticket_key}: {e}", source="jira"
            ) from e

        if response.status_code != 200:
            logger.error(
                "Failed to get JIRA issue",
                issue_key=ticket_key,
                status_code=response.status_code,
            )
            raise UpstreamFetchError(
                f"Failed to fetch JIRA ticket {ticket_key}: {self._error_messages(response)}",
                source="jira",
                upstream_status=response.status_code,
            )

        try:
            issue_data = response.json()
        except ValueError as e:
            raise UpstreamFetchError(
                f"Failed to fetch JIRA ticket {ticket_key}: response is not JSON", source="jira"
            ) from e

        logger.info("JIRA issue fetched", issue_key=ticket_key)
        return issue_data

    @staticmethod
    def _error_messages(response: httpx.Response) -> str:
        try:
            messages = response.json().get("errorMessages")
        except (ValueError, AttributeError):
            messages = None
        if messages:
            return "; ".join(str(m) for m in messages)
        return f"HTTP {response.status_code}"

    def _is_configured(self) -> bool:
        """Check if JIRA service is properly configured"""
        return bool(self.base_url and self.username and self.api_token)
