"""
Review context assembly.

``build_review_context`` fetches the changed files of one review and keeps them
as they are. ``clean_review_context`` is a pure filter over that raw context:
it keeps source files only and strips diffs down to their content lines.
"""

from typing import Any, Iterable, List, Optional, Sequence

import structlog

from testgen.config.settings import settings
from testgen.models.schemas import (
    CleanedFile,
    CleanedReviewContext,
    RawReviewContext,
    ReviewReference,
)
from testgen.repositories.interfaces.review_source import IReviewSource

logger = structlog.get_logger()

DIFF_CONTENT_PREFIXES = ("+", "-", "@@")
DIFF_HEADER_PREFIXES = ("+++", "---")


async def build_review_context(
    reference: ReviewReference,
    review_source: IReviewSource,
    page_size: Optional[int] = None,
) -> RawReviewContext:
    """Fetch the changed files of a review.

    Only the first page is requested; reviews touching more files than
    ``page_size`` are analysed on that first page alone. Fetch errors
    propagate as ``UpstreamFetchError``.
    """
    files = await review_source.get_changed_files(
        reference.owner,
        reference.repository,
        reference.review_number,
        per_page=page_size or settings.review_files_page_size,
    )
    logger.info(
        "Review context built",
        review=str(reference),
        files=len(files),
    )
    for changed in files:
        logger.debug(
            "Review file diff",
            review=str(reference),
            path=changed.path,
            status=changed.status,
            patch=changed.raw_patch or "(no patch available)",
        )
    return RawReviewContext(
        owner=reference.owner,
        repository=reference.repository,
        review_number=reference.review_number,
        files=files,
    )


def is_relevant_file(
    path: Any,
    source_suffix: Optional[str] = None,
    skip_extensions: Optional[Sequence[str]] = None,
) -> bool:
    """A file is relevant when it ends with the source suffix and no skip extension."""
    if not isinstance(path, str) or not path:
        return False
    suffix = settings.source_file_suffix if source_suffix is None else source_suffix
    skipped = settings.skip_extensions if skip_extensions is None else skip_extensions
    if not path.endswith(suffix):
        return False
    return not any(path.endswith(ext) for ext in skipped)


def clean_patch(patch: Any) -> str:
    """Keep added, removed and hunk header lines; drop file header lines."""
    if not isinstance(patch, str) or not patch:
        return ""
    kept = [
        line
        for line in patch.splitlines()
        if line.startswith(DIFF_CONTENT_PREFIXES) and not line.startswith(DIFF_HEADER_PREFIXES)
    ]
    return "\n".join(kept)


def clean_review_context(
    raw: RawReviewContext,
    source_suffix: Optional[str] = None,
    skip_extensions: Optional[Sequence[str]] = None,
) -> CleanedReviewContext:
    files: Iterable[Any] = raw.files or []
    cleaned: List[CleanedFile] = []
    for changed in files:
        path = getattr(changed, "path", None)
        if not is_relevant_file(path, source_suffix, skip_extensions):
            continue
        status = getattr(changed, "status", "")
        cleaned.append(
            CleanedFile(
                path=path,
                status=status if isinstance(status, str) else "",
                cleaned_patch=clean_patch(getattr(changed, "raw_patch", "")),
            )
        )
    return CleanedReviewContext(review_number=raw.review_number, files=cleaned)
