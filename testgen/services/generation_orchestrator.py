import time
import uuid
from typing import List, Optional, Sequence

import structlog

from testgen.config.settings import settings
from testgen.core.exceptions import InvalidInput, PipelineError
from testgen.models.schemas import (
    ClientMetadata,
    GenerateTestCasesRequest,
    GenerateTestCasesResponse,
    GenerationOutcome,
    GenerationRecord,
    GenerationResponseData,
    NormalizedTicket,
    ReviewAnalysisEntry,
    TestCaseDocument,
    TestCaseDocumentStatus,
)
from testgen.repositories.interfaces.generation_history_repository import IGenerationHistoryRepository
from testgen.repositories.interfaces.jira_service import IJiraService
from testgen.repositories.interfaces.review_source import IReviewSource
from testgen.repositories.interfaces.test_case_repository import ITestCaseRepository
from testgen.services.behavior_analyzer import BehaviorAnalyzer
from testgen.services.review_context import build_review_context, clean_review_context
from testgen.services.review_link_parser import parse_review_link
from testgen.services.test_case_synthesizer import TestCaseSynthesizer
from testgen.services.ticket_normalizer import normalize_ticket

logger = structlog.get_logger()


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


class GenerationOrchestrator:
    """Run one generation end to end.

    Fetch ticket -> normalize -> analyze each review -> synthesize -> persist.
    A failing review is recorded in its entry and the loop moves on; a failure
    anywhere else fails the request and leaves a ``failed`` audit record.
    """

    def __init__(
        self,
        jira_service: IJiraService,
        review_source: IReviewSource,
        analyzer: BehaviorAnalyzer,
        synthesizer: TestCaseSynthesizer,
        test_case_repository: ITestCaseRepository,
        history_repository: IGenerationHistoryRepository,
    ):
        self.jira_service = jira_service
        self.review_source = review_source
        self.analyzer = analyzer
        self.synthesizer = synthesizer
        self.test_case_repository = test_case_repository
        self.history_repository = history_repository

    async def generate(
        self,
        request: GenerateTestCasesRequest,
        client: Optional[ClientMetadata] = None,
    ) -> GenerateTestCasesResponse:
        client = client or ClientMetadata()
        ticket_key = (request.ticket_key or "").strip()
        if not ticket_key:
            raise InvalidInput("JIRA ticket key is required", field="ticketKey")

        started = time.perf_counter()
        log = logger.bind(ticket_key=ticket_key)
        log.info("Processing test case generation")

        try:
            raw_ticket = await self.jira_service.fetch_ticket(ticket_key)
            ticket = normalize_ticket(raw_ticket)

            links = self.select_review_links(ticket, request.review_links)
            entries = await self.process_reviews(links)

            analysis = await self._reasoning_analysis(ticket) if request.use_reasoning else None

            result = await self.synthesizer.synthesize(ticket, entries, model=request.model_override)

            generation_id = uuid.uuid4().hex
            await self.test_case_repository.create(
                TestCaseDocument(
                    generation_id=generation_id,
                    jira_ticket_id=ticket.ticket_id,
                    jira_ticket_key=ticket.ticket_key,
                    summary=ticket.summary,
                    description=ticket.description,
                    test_cases=result.test_cases,
                    model_used=result.model_used,
                    generation_time_ms=result.generation_duration_ms,
                    status=TestCaseDocumentStatus.GENERATED,
                )
            )

            outcome = GenerationOutcome.SUCCESS if result.test_cases else GenerationOutcome.PARTIAL
            await self.history_repository.record(
                GenerationRecord(
                    generation_id=generation_id,
                    ticket_key=ticket.ticket_key,
                    request_snapshot=self._request_snapshot(request),
                    response_summary={
                        "testCasesCount": len(result.test_cases),
                        "reviewCount": len(entries),
                        "reviewErrors": sum(1 for e in entries if e.failed),
                    },
                    model_used=result.model_used,
                    duration_ms=_elapsed_ms(started),
                    outcome=outcome,
                    client_metadata=client,
                )
            )
        except Exception as e:
            log.error("Test case generation failed", error=str(e), error_type=type(e).__name__)
            await self._record_failure(ticket_key, request, client, e, started)
            raise

        log.info(
            "Test case generation completed",
            generation_id=generation_id,
            test_cases=len(result.test_cases),
            outcome=outcome.value,
            duration_ms=_elapsed_ms(started),
        )
        return GenerateTestCasesResponse(
            success=True,
            message="Test cases generated successfully",
            data=GenerationResponseData(
                generation_id=generation_id,
                test_cases=result.test_cases,
                analysis=analysis,
            ),
        )

    @staticmethod
    def select_review_links(ticket: NormalizedTicket, request_links: Sequence[str]) -> List[str]:
        """Links embedded in the ticket win; request links are used only when there are none."""
        if ticket.review_links:
            logger.info("Using review links from ticket description", count=len(ticket.review_links))
            return list(ticket.review_links)
        links = [link for link in request_links or [] if link]
        if links:
            logger.info("Using review links from request body", count=len(links))
        else:
            logger.info("No review links found, proceeding without review context")
        return links

    async def process_reviews(self, links: Sequence[str]) -> List[ReviewAnalysisEntry]:
        """Analyze each review in link order; a failure becomes an error entry."""
        entries: List[ReviewAnalysisEntry] = []
        for index, link in enumerate(links, start=1):
            logger.info("Processing review", position=index, total=len(links), review_link=link)
            entries.append(await self._process_review(link))
        logger.info(
            "Review analyses collected",
            total=len(entries),
            failed=sum(1 for e in entries if e.failed),
        )
        return entries

    async def _process_review(self, link: str) -> ReviewAnalysisEntry:
        reference = None
        try:
            reference = parse_review_link(link)
            raw_context = await build_review_context(reference, self.review_source)
            cleaned = clean_review_context(raw_context)
            analysis = await self.analyzer.analyze(cleaned)
        except Exception as e:
            message = e.message if isinstance(e, PipelineError) else str(e)
            logger.warning(
                "Review analysis failed",
                review_link=link,
                error=message,
                error_type=type(e).__name__,
            )
            return ReviewAnalysisEntry(
                review_link=str(link),
                review_number=reference.review_number if reference else None,
                owner=reference.owner if reference else None,
                repository=reference.repository if reference else None,
                analysis=None,
                error=message or type(e).__name__,
            )

        logger.info("Review analyzed", review=str(reference), files=len(analysis))
        return ReviewAnalysisEntry(
            review_link=link,
            review_number=reference.review_number,
            owner=reference.owner,
            repository=reference.repository,
            analysis=analysis,
        )

    async def _reasoning_analysis(self, ticket: NormalizedTicket) -> Optional[str]:
        try:
            return await self.synthesizer.analyze_with_reasoning(ticket)
        except PipelineError as e:
            logger.warning("Reasoning analysis failed, continuing without it", error=e.message)
            return None

    async def _record_failure(
        self,
        ticket_key: str,
        request: GenerateTestCasesRequest,
        client: ClientMetadata,
        error: Exception,
        started: float,
    ) -> None:
        message = error.message if isinstance(error, PipelineError) else str(error)
        try:
            await self.history_repository.record(
                GenerationRecord(
                    generation_id=uuid.uuid4().hex,
                    ticket_key=ticket_key or "unknown",
                    request_snapshot=self._request_snapshot(request),
                    model_used=request.model_override or settings.ollama_coder_model,
                    duration_ms=_elapsed_ms(started),
                    outcome=GenerationOutcome.FAILED,
                    error_message=message or type(error).__name__,
                    client_metadata=client,
                )
            )
        except Exception as history_error:
            # Never replaces the error being reported
            logger.error("Error saving failed generation history", error=str(history_error))

    @staticmethod
    def _request_snapshot(request: GenerateTestCasesRequest) -> dict:
        return request.model_dump(mode="json", by_alias=True, exclude_none=True)
