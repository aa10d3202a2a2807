import json
from typing import List, Optional

import structlog
from pydantic import ValidationError

from testgen.config.settings import settings
from testgen.core.exceptions import EmptyModelOutput, MalformedModelOutput
from testgen.models.schemas import (
    BehaviorAnalysis,
    BehaviorSummary,
    CleanedReviewContext,
    GenerationOptions,
)
from testgen.repositories.interfaces.language_model import ILanguageModelService

logger = structlog.get_logger()

BEHAVIOR_PROMPT_TEMPLATE = """You are a Senior Backend Engineer reviewing the changes in a GitHub Pull Request.

Describe ONLY what changed in the behavior of the system, in plain English
that a non-developer can follow. Focus on WHAT changed, not HOW it was built.

ABSOLUTE RULES:
- Do NOT mention code, variables, patterns, conditions or other technical terms.
- Do NOT mention tests, test cases or test methods.
- Do NOT explain implementation details.
- Every entry must describe exactly one observable change in behavior.
- Do NOT merge several changes into one sentence and do NOT summarize broadly.

Think in terms of:
- inputs that used to be accepted and are now rejected
- inputs that used to be rejected and are now accepted
- outcomes that changed (for example: a value is now cleared, ignored or accepted)

If a test file changed, describe only the behavior that change reveals,
never the test itself.

INPUT CONTEXT

<PULL_REQUEST_CONTEXT_JSON>
{context_json}
</PULL_REQUEST_CONTEXT_JSON>

OUTPUT FORMAT (STRICT - JSON ONLY, no prose, no markdown fences)

{{
  "codeChangeContextSummary": [
    {{
      "file": "<file_name>",
      "changeType": "Added | Modified | Removed | No Behavioral Change",
      "changes": [
        "<one plain English description of one behavior change>"
      ]
    }}
  ]
}}

RULES FOR OUTPUT:
- Use simple, non-technical English.
- Do NOT use words like regex, logic, validation, pattern, method or function.
- If no behavior changed in a file, use ["No behavioral change observed"].
"""


class BehaviorAnalyzer:
    """Summarize one cleaned review context as observable behavior changes.

    The reply must be a JSON object; there is no text-level fallback. Any
    failure is raised for the caller to record against that single review.
    """

    def __init__(
        self,
        language_model: ILanguageModelService,
        model: Optional[str] = None,
        options: Optional[GenerationOptions] = None,
    ):
        self.language_model = language_model
        self.model = model or settings.ollama_coder_model
        self.options = options or GenerationOptions(
            temperature=settings.model_temperature,
            top_p=settings.model_top_p,
            max_tokens=settings.model_max_tokens,
        )

    def build_prompt(self, context: CleanedReviewContext) -> str:
        context_json = json.dumps(context.model_dump(mode="json", by_alias=True), indent=2)
        return BEHAVIOR_PROMPT_TEMPLATE.format(context_json=context_json)

    async def analyze(self, context: CleanedReviewContext) -> List[BehaviorAnalysis]:
        """Raises ModelUnavailable, EmptyModelOutput or MalformedModelOutput."""
        prompt = self.build_prompt(context)
        raw_text = await self.language_model.generate(
            prompt,
            model=self.model,
            options=self.options,
            response_format="json",
        )

        if not raw_text or not raw_text.strip():
            logger.error("Behavior analysis returned an empty reply", review_number=context.review_number)
            raise EmptyModelOutput(model=self.model)

        return self.parse_reply(raw_text, review_number=context.review_number)

    @staticmethod
    def parse_reply(raw_text: str, review_number: Optional[int] = None) -> List[BehaviorAnalysis]:
        try:
            parsed = json.loads(raw_text)
        except json.JSONDecodeError as e:
            logger.error(
                "Behavior analysis reply is not valid JSON",
                review_number=review_number,
                response_preview=raw_text[:500],
            )
            raise MalformedModelOutput("Model did not return valid JSON", raw_text) from e

        try:
            summary = BehaviorSummary.model_validate(parsed)
        except ValidationError as e:
            logger.error(
                "Behavior analysis reply has an unexpected shape",
                review_number=review_number,
                error=str(e),
                response_preview=raw_text[:500],
            )
            raise MalformedModelOutput(
                "Model reply is missing codeChangeContextSummary entries", raw_text
            ) from e

        logger.info(
            "Behavior analysis parsed",
            review_number=review_number,
            files=len(summary.code_change_context_summary),
        )
        return summary.code_change_context_summary
