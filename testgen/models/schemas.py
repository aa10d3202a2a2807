from pydantic import AliasChoices, BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel
from typing import List, Optional, Dict, Any
from datetime import datetime
from enum import Enum


class TestCaseCategory(str, Enum):
    POSITIVE = "Positive"
    NEGATIVE = "Negative"
    BOUNDARY = "Boundary"
    # Used when the model reply does not name one of the categories above
    FUNCTIONAL = "Functional"

    @classmethod
    def from_label(cls, label: Optional[str]) -> "TestCaseCategory":
        if label:
            wanted = label.strip().lower()
            for category in cls:
                if category.value.lower() == wanted:
                    return category
        return cls.FUNCTIONAL


class ChangeType(str, Enum):
    ADDED = "Added"
    MODIFIED = "Modified"
    REMOVED = "Removed"
    NO_BEHAVIORAL_CHANGE = "No Behavioral Change"


class GenerationOutcome(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    PARTIAL = "partial"


class TestCaseDocumentStatus(str, Enum):
    GENERATED = "generated"
    REVIEWED = "reviewed"
    APPROVED = "approved"
    EXPORTED = "exported"


class CamelModel(BaseModel):
    """Snake-case attributes, camelCase on the wire."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        protected_namespaces = ()


# ---------------------------------------------------------------------------
# Ticket
# ---------------------------------------------------------------------------


class NormalizedTicket(CamelModel):
    ticket_key: str = Field(..., description="Ticket key, e.g. PROJ-123")
    ticket_id: str = Field("", description="Tracker-internal ticket id")
    summary: str = ""
    description: str = Field("", description="Plain text description")
    issue_type: str = ""
    status: str = ""
    review_links: List[str] = Field(default_factory=list, description="Review links embedded in the description")

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        frozen = True


# ---------------------------------------------------------------------------
# Code review context
# ---------------------------------------------------------------------------


class ReviewReference(CamelModel):
    owner: str
    repository: str
    review_number: int = Field(..., ge=0)

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        frozen = True

    def __str__(self) -> str:
        return f"{self.owner}/{self.repository}/pull/{self.review_number}"


class ChangedFile(CamelModel):
    path: str
    status: str = ""
    raw_patch: str = Field("", description="Unified diff; empty when the platform omits it")


class RawReviewContext(CamelModel):
    owner: str
    repository: str
    review_number: int
    files: List[ChangedFile] = Field(default_factory=list)


class CleanedFile(CamelModel):
    path: str
    status: str = ""
    cleaned_patch: str = ""


class CleanedReviewContext(CamelModel):
    review_number: int
    files: List[CleanedFile] = Field(default_factory=list)


class BehaviorAnalysis(CamelModel):
    file: str = ""
    change_type: ChangeType = ChangeType.MODIFIED
    changes: List[str] = Field(default_factory=list)

    @field_validator("change_type", mode="before")
    @classmethod
    def _normalize_change_type(cls, value: Any) -> Any:
        if isinstance(value, str):
            wanted = value.strip().lower()
            for change_type in ChangeType:
                if change_type.value.lower() == wanted:
                    return change_type
            return ChangeType.MODIFIED
        return value

    @field_validator("changes", mode="before")
    @classmethod
    def _wrap_single_change(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [value]
        if value is None:
            return []
        return value


class BehaviorSummary(CamelModel):
    code_change_context_summary: List[BehaviorAnalysis] = Field(...)


class ReviewAnalysisEntry(CamelModel):
    review_link: str
    review_number: Optional[int] = None
    owner: Optional[str] = None
    repository: Optional[str] = None
    analysis: Optional[List[BehaviorAnalysis]] = None
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------


class TestCase(CamelModel):
    __test__ = False

    id: str = Field(..., description="Identifier unique within one generation, e.g. TC001")
    statement: str = Field(..., description="What is being verified")
    expected_result: str = Field(..., description="Observable expected outcome")
    category: TestCaseCategory = TestCaseCategory.FUNCTIONAL


class GenerationResult(CamelModel):
    test_cases: List[TestCase] = Field(default_factory=list)
    model_used: str
    generation_duration_ms: int = 0
    raw_model_reply: str = ""
    attempts: int = 0


class GenerationOptions(BaseModel):
    """Decoding options forwarded to the model backend."""

    temperature: float = 0.2
    top_p: float = 0.9
    max_tokens: int = 2048

    def to_ollama(self) -> Dict[str, Any]:
        return {
            "temperature": self.temperature,
            "top_p": self.top_p,
            "num_predict": self.max_tokens,
        }


class GenerateTestCasesRequest(CamelModel):
    ticket_key: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("ticketKey", "jiraTicketKey", "ticket_key"),
        description="Ticket key to generate test cases for",
    )
    model_override: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("modelOverride", "model", "model_override"),
    )
    use_reasoning: bool = Field(
        False,
        validation_alias=AliasChoices("useReasoning", "use_reasoning"),
    )
    review_links: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("reviewLinks", "prLinks", "review_links"),
        description="Used only when the ticket description embeds no review links",
    )


class ClientMetadata(CamelModel):
    user_agent: Optional[str] = None
    ip_address: Optional[str] = None


class GenerationResponseData(CamelModel):
    generation_id: str
    test_cases: List[TestCase] = Field(default_factory=list)
    analysis: Optional[str] = None


class GenerateTestCasesResponse(CamelModel):
    success: bool = True
    message: str = "Test cases generated successfully"
    data: GenerationResponseData


# ---------------------------------------------------------------------------
# Persisted shapes
# ---------------------------------------------------------------------------


class TestCaseDocument(CamelModel):
    __test__ = False

    generation_id: str
    jira_ticket_id: str
    jira_ticket_key: str
    summary: str = ""
    description: Optional[str] = None
    test_cases: List[TestCase] = Field(default_factory=list)
    model_used: Optional[str] = None
    generation_time_ms: Optional[int] = None
    status: TestCaseDocumentStatus = TestCaseDocumentStatus.GENERATED
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        protected_namespaces = ()
        from_attributes = True


class GenerationRecord(CamelModel):
    generation_id: str
    ticket_key: str
    request_snapshot: Dict[str, Any] = Field(default_factory=dict)
    response_summary: Optional[Dict[str, Any]] = None
    model_used: Optional[str] = None
    duration_ms: int = 0
    outcome: GenerationOutcome = GenerationOutcome.SUCCESS
    error_message: Optional[str] = None
    client_metadata: ClientMetadata = Field(default_factory=ClientMetadata)
    created_at: Optional[datetime] = None


class Pagination(CamelModel):
    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int


class HistoryPage(CamelModel):
    history: List[GenerationRecord] = Field(default_factory=list)
    pagination: Pagination
