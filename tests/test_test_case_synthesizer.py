import pytest

from testgen.core.exceptions import ModelUnavailable
from testgen.models.schemas import (
    BehaviorAnalysis,
    ChangeType,
    NormalizedTicket,
    ReviewAnalysisEntry,
)
from testgen.services.test_case_parser import FALLBACK_STATEMENT
from testgen.services.test_case_synthesizer import TestCaseSynthesizer
from tests.fakes import FakeLanguageModel, TWO_CASE_REPLY


TICKET = NormalizedTicket(
    ticket_key="PROJ-9",
    summary="Validate mobile numbers",
    description="Mobile number must be 10 digits.",
)


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, seconds):
        self.delays.append(seconds)


def _synthesizer(model, sleep=None, **kwargs):
    return TestCaseSynthesizer(
        model,
        model="coder",
        reasoning_model="reasoner",
        max_attempts=2,
        backoff_seconds=2.0,
        sleep=sleep or RecordingSleep(),
        **kwargs,
    )


def test_prompt_contains_ticket_and_reviews_in_order():
    entries = [
        ReviewAnalysisEntry(
            review_link="https://github.com/acme/mobile/pull/1",
            review_number=1,
            owner="acme",
            repository="mobile",
            analysis=[BehaviorAnalysis(file="A.java", change_type=ChangeType.ADDED, changes=["New field shown"])],
        ),
        ReviewAnalysisEntry(review_link="not a link", error="Invalid URL"),
    ]
    prompt = _synthesizer(FakeLanguageModel()).build_prompt(TICKET, entries)

    assert "- Ticket: PROJ-9" in prompt
    assert "- Summary: Validate mobile numbers" in prompt
    assert "- Description: Mobile number must be 10 digits." in prompt
    assert "Review #1 - acme/mobile/pull/1:" in prompt
    assert '"changeType": "Added"' in prompt
    assert "Review #2 (not a link):\nERROR: Invalid URL" in prompt
    assert prompt.index("Review #1") < prompt.index("Review #2")
    assert "15-20 test cases" in prompt


def test_prompt_without_reviews():
    prompt = _synthesizer(FakeLanguageModel()).build_prompt(TICKET, [])
    assert "No review context available" in prompt


@pytest.mark.asyncio
async def test_first_attempt_success():
    model = FakeLanguageModel(synthesis_replies=[TWO_CASE_REPLY])
    sleep = RecordingSleep()

    result = await _synthesizer(model, sleep).synthesize(TICKET, [])

    assert [c.id for c in result.test_cases] == ["TC001", "TC002"]
    assert result.model_used == "coder"
    assert result.attempts == 1
    assert result.raw_model_reply == TWO_CASE_REPLY
    assert sleep.delays == []


@pytest.mark.asyncio
async def test_second_attempt_result_is_returned():
    model = FakeLanguageModel(synthesis_replies=["", TWO_CASE_REPLY])
    sleep = RecordingSleep()

    result = await _synthesizer(model, sleep).synthesize(TICKET, [])

    assert len(result.test_cases) == 2
    assert result.attempts == 2
    assert sleep.delays == [2.0]
    assert len(model.prompts("synthesis")) == 2


@pytest.mark.asyncio
async def test_model_errors_are_retried_and_never_raised():
    model = FakeLanguageModel(synthesis_replies=[ModelUnavailable(model="coder"), ModelUnavailable(model="coder")])

    result = await _synthesizer(model).synthesize(TICKET, [])

    assert result.test_cases == []
    assert result.attempts == 2


@pytest.mark.asyncio
async def test_unparseable_reply_surfaces_as_placeholder_case():
    reply = "Sorry, here is some prose about mobile numbers. " * 20
    model = FakeLanguageModel(synthesis_replies=[reply, reply])

    result = await _synthesizer(model).synthesize(TICKET, [])

    assert len(result.test_cases) == 1
    case = result.test_cases[0]
    assert case.statement == FALLBACK_STATEMENT
    assert case.expected_result == reply[:500]
    assert result.raw_model_reply == reply


@pytest.mark.asyncio
async def test_model_override_is_used():
    model = FakeLanguageModel(synthesis_replies=[TWO_CASE_REPLY])

    result = await _synthesizer(model).synthesize(TICKET, [], model="llama3")

    assert result.model_used == "llama3"
    assert model.calls[0]["model"] == "llama3"


@pytest.mark.asyncio
async def test_reasoning_analysis_uses_reasoning_model():
    model = FakeLanguageModel(reasoning_replies=["  1. Key features: mobile validation  "])

    analysis = await _synthesizer(model).analyze_with_reasoning(TICKET)

    assert analysis == "1. Key features: mobile validation"
    assert model.calls[0]["model"] == "reasoner"
    assert "Security considerations" in model.calls[0]["prompt"]
