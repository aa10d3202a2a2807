"""Parse code review links of the form ``<host>/<owner>/<repo>/pull/<number>``."""

import re
from typing import Any, List
from urllib.parse import urlsplit

from testgen.core.exceptions import InvalidFormat, InvalidLink
from testgen.models.schemas import ReviewReference

DEFAULT_SCHEME = "https://"

_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*://")
_HOST_RE = re.compile(r"^[A-Za-z0-9](?:[A-Za-z0-9.-]*[A-Za-z0-9])?$")
_NUMBER_RE = re.compile(r"^[0-9]+$")

# Candidate review links inside free text, with or without a scheme
_EMBEDDED_LINK_RE = re.compile(
    r"(?:https?://)?[A-Za-z0-9][A-Za-z0-9.-]*\.[A-Za-z]{2,}/[\w.-]+/[\w.-]+/pull/\d+",
)


def parse_review_link(link: Any) -> ReviewReference:
    """Turn a pull request URL into a :class:`ReviewReference`.

    Raises:
        InvalidLink: the input is not a URL at all.
        InvalidFormat: the URL path is not ``owner/repo/pull/<number>``.
    """
    if not isinstance(link, str) or not link.strip():
        raise InvalidLink(link, "Invalid pull request link")

    normalized = link.strip()
    if not _SCHEME_RE.match(normalized):
        normalized = DEFAULT_SCHEME + normalized

    if any(ch.isspace() for ch in normalized):
        raise InvalidLink(link)

    try:
        parts = urlsplit(normalized)
        # Accessing port validates it
        parts.port
    except ValueError:
        raise InvalidLink(link)

    if parts.scheme.lower() not in ("http", "https"):
        raise InvalidLink(link, f"Unsupported URL scheme: {parts.scheme}")
    if not parts.hostname or not _HOST_RE.match(parts.hostname):
        raise InvalidLink(link)

    segments = [segment for segment in parts.path.split("/") if segment]
    if len(segments) < 4 or segments[2] != "pull":
        raise InvalidFormat(link)

    owner, repository, number = segments[0], segments[1], segments[3]
    if not owner or not repository or not _NUMBER_RE.match(number):
        raise InvalidFormat(link, "Invalid pull request link components")

    return ReviewReference(owner=owner, repository=repository, review_number=int(number))


def find_review_links(text: str) -> List[str]:
    """Return pull request URLs mentioned in free text, in order of appearance."""
    if not text:
        return []
    return [match.group(0) for match in _EMBEDDED_LINK_RE.finditer(text)]
