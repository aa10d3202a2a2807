from typing import Any, Dict, List

import structlog

from testgen.core.exceptions import UpstreamFetchError
from testgen.models.schemas import NormalizedTicket
from testgen.services.rich_text import collect_link_urls, extract_plain_text
from testgen.services.review_link_parser import find_review_links

logger = structlog.get_logger()


def normalize_ticket(raw_ticket: Dict[str, Any]) -> NormalizedTicket:
    """Reduce a raw Jira issue payload to the fields the pipeline uses.

    Review links are collected from the plain text description first, then
    from smart links and link marks, keeping first-seen order.
    """
    if not isinstance(raw_ticket, dict) or not raw_ticket.get("key"):
        raise UpstreamFetchError("Ticket payload is missing its key", source="jira")

    fields = raw_ticket.get("fields") or {}
    raw_description = fields.get("description")
    description = extract_plain_text(raw_description)

    issue_type = fields.get("issuetype") or {}
    status = fields.get("status") or {}

    ticket = NormalizedTicket(
        ticket_key=str(raw_ticket["key"]),
        ticket_id=str(raw_ticket.get("id") or ""),
        summary=fields.get("summary") or "",
        description=description,
        issue_type=issue_type.get("name", "") if isinstance(issue_type, dict) else "",
        status=status.get("name", "") if isinstance(status, dict) else "",
        review_links=_collect_review_links(description, raw_description),
    )
    logger.info(
        "Ticket normalized",
        ticket_key=ticket.ticket_key,
        description_chars=len(ticket.description),
        embedded_review_links=len(ticket.review_links),
    )
    return ticket


def _collect_review_links(description: str, raw_description: Any) -> List[str]:
    candidates = find_review_links(description)
    for url in collect_link_urls(raw_description):
        candidates.extend(find_review_links(url))

    seen = set()
    links: List[str] = []
    for link in candidates:
        key = link.split("://", 1)[-1].lower()
        if key not in seen:
            seen.add(key)
            links.append(link)
    return links
