"""Tagged results for parsing loosely shaped model replies."""

from typing import List, Literal, Union

from pydantic import BaseModel

from testgen.models.schemas import TestCase


class ParseOk(BaseModel):
    kind: Literal["ok"] = "ok"
    value: List[TestCase]
    # Which reading produced the value: "json" or "text"
    source: str


class ParseFailure(BaseModel):
    kind: Literal["failure"] = "failure"
    reason: str
    raw_text: str


ParseResult = Union[ParseOk, ParseFailure]
