"""
Recovery parser for test-case replies.

The model is asked for a line-oriented grammar but sometimes answers with a
JSON object instead. Both readings are tried, JSON first; a reply that yields
nothing under either comes back as a ParseFailure carrying the raw text.
"""

import json
import re
from typing import Any, Dict, List, Optional

import structlog

from testgen.models.results import ParseFailure, ParseOk, ParseResult
from testgen.models.schemas import TestCase, TestCaseCategory

logger = structlog.get_logger()

FALLBACK_STATEMENT = "Generated Test Case"

# A line of three or more dashes, or two-or-more blank lines.
BLOCK_SEPARATOR = re.compile(r"^[ \t]*-{3,}[ \t]*$|\n(?:[ \t]*\n){2,}", re.MULTILINE)

_FIELD_FLAGS = re.IGNORECASE | re.DOTALL | re.MULTILINE
# A value must start on the label's own line; wrapped continuation lines are allowed.
ID_PATTERN = re.compile(r"^[ \t]*TestCaseId:[ \t]*(\S+)", _FIELD_FLAGS)
TEST_PATTERN = re.compile(r"^[ \t]*Test:[ \t]*(\S.*?)(?=\n[ \t]*Expected Result:|\Z)", _FIELD_FLAGS)
EXPECTED_PATTERN = re.compile(r"^[ \t]*Expected Result:[ \t]*(\S.*?)(?=\n[ \t]*Type:|\Z)", _FIELD_FLAGS)
TYPE_PATTERN = re.compile(r"^[ \t]*Type:[ \t]*(\w+)", _FIELD_FLAGS)

_JSON_KEYS = {
    "id": ("testCaseId", "TestCaseId", "id"),
    "statement": ("test", "Test", "statement"),
    "expected_result": ("expectedResult", "Expected Result", "expected_result"),
    "category": ("type", "Type", "category"),
}


def extract_json(content: str) -> Optional[str]:
    """Extract a single JSON object from content.
    Handles code fences and finds the first balanced JSON object.
    """
    if not content:
        return None
    cleaned = content.strip()
    if cleaned.startswith("```"):
        # remove opening fence and optional language (e.g., ```json)
        cleaned = cleaned.split("\n", 1)[1] if "\n" in cleaned else cleaned
        if cleaned.endswith("```"):
            cleaned = cleaned[:-3]
    cleaned = cleaned.replace("```json", "").replace("```JSON", "").strip()

    m = re.search(r"\{[\s\S]*\}", cleaned)
    if m:
        try:
            json.loads(m.group())
            return m.group()
        except ValueError:
            pass

    # Fallback: balanced braces scan
    depth = 0
    start = -1
    for i, ch in enumerate(cleaned):
        if ch == "{":
            if depth == 0:
                start = i
            depth += 1
        elif ch == "}":
            if depth > 0:
                depth -= 1
                if depth == 0 and start != -1:
                    candidate = cleaned[start : i + 1]
                    try:
                        json.loads(candidate)
                        return candidate
                    except ValueError:
                        start = -1
                        continue
    return None


def _first_text(item: Dict[str, Any], keys) -> str:
    for key in keys:
        value = item.get(key)
        if value is not None and not isinstance(value, (dict, list)):
            text = _flatten(str(value))
            if text:
                return text
    return ""


def _flatten(text: str) -> str:
    return re.sub(r"\s*\n\s*", " ", text).strip()


def parse_json_test_cases(content: str) -> List[TestCase]:
    """Read a ``testCases`` array out of a JSON object in the reply.

    Entries without a statement or expected result are skipped.
    """
    extracted = extract_json(content)
    if not extracted:
        return []
    parsed = json.loads(extracted)
    raw_cases = parsed.get("testCases") if isinstance(parsed, dict) else None
    if not isinstance(raw_cases, list):
        return []

    test_cases: List[TestCase] = []
    for item in raw_cases:
        if not isinstance(item, dict):
            continue
        statement = _first_text(item, _JSON_KEYS["statement"])
        expected = _first_text(item, _JSON_KEYS["expected_result"])
        if not statement or not expected:
            continue
        test_cases.append(
            TestCase(
                id=_first_text(item, _JSON_KEYS["id"]),
                statement=statement,
                expected_result=expected,
                category=TestCaseCategory.from_label(_first_text(item, _JSON_KEYS["category"])),
            )
        )
    return _ensure_unique_ids(test_cases)


def parse_structured_text(content: str) -> List[TestCase]:
    """Parse ``TestCaseId/Test/Expected Result/Type`` blocks.

    A block missing its id, test or expected result is dropped.
    """
    if not content:
        return []
    normalized = content.replace("\r\n", "\n")
    test_cases: List[TestCase] = []
    for block in BLOCK_SEPARATOR.split(normalized):
        if not block or not block.strip():
            continue
        id_match = ID_PATTERN.search(block)
        test_match = TEST_PATTERN.search(block)
        expected_match = EXPECTED_PATTERN.search(block)
        if not (id_match and test_match and expected_match):
            continue
        case_id = id_match.group(1).strip()
        statement = _flatten(test_match.group(1))
        expected = _flatten(expected_match.group(1))
        if not (case_id and statement and expected):
            continue
        type_match = TYPE_PATTERN.search(block)
        test_cases.append(
            TestCase(
                id=case_id,
                statement=statement,
                expected_result=expected,
                category=TestCaseCategory.from_label(type_match.group(1) if type_match else None),
            )
        )
    return _ensure_unique_ids(test_cases)


def _ensure_unique_ids(test_cases: List[TestCase]) -> List[TestCase]:
    ids = [tc.id for tc in test_cases]
    if all(ids) and len(set(ids)) == len(ids):
        return test_cases
    return [
        tc.model_copy(update={"id": f"TC{index:03d}"})
        for index, tc in enumerate(test_cases, start=1)
    ]


def parse_test_case_reply(content: Optional[str]) -> ParseResult:
    """JSON first, then the structured-text grammar."""
    raw_text = content or ""
    if not raw_text.strip():
        return ParseFailure(reason="Model returned an empty response", raw_text=raw_text)

    try:
        json_cases = parse_json_test_cases(raw_text)
    except ValueError as e:
        logger.debug("JSON reading of reply failed", error=str(e))
        json_cases = []
    if json_cases:
        return ParseOk(value=json_cases, source="json")

    text_cases = parse_structured_text(raw_text)
    if text_cases:
        return ParseOk(value=text_cases, source="text")

    return ParseFailure(reason="No test cases could be parsed from the model reply", raw_text=raw_text)


def fallback_test_case(raw_text: str, limit: int = 500) -> TestCase:
    """Single placeholder case that carries the start of an unparseable reply."""
    return TestCase(
        id="TC001",
        statement=FALLBACK_STATEMENT,
        expected_result=raw_text[:limit],
        category=TestCaseCategory.FUNCTIONAL,
    )
