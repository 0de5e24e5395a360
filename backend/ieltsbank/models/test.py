"""Test-related Pydantic models."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class ContentType(str, Enum):
    """IELTS test terms available on the source site."""

    READING = "reading"
    LISTENING = "listening"


class QuestionType(str, Enum):
    """How a question is answered."""

    TEXT = "text"  # free text input
    RADIO = "radio"  # single choice


class RadioOption(BaseModel):
    """One choice of a single-choice question."""

    value: str
    label: str


class TestInfo(BaseModel):
    """Free-form metadata shown on the listing card."""

    duration: str | None = None
    attempts: str | None = None
    comments: str | None = None


class Question(BaseModel):
    """A question as exposed to clients."""

    id: str
    number: int
    type: QuestionType = QuestionType.TEXT
    text: str
    options: list[RadioOption] | None = None


class QuestionGroup(BaseModel):
    """Questions sharing one context or instruction block."""

    id: str
    part_id: str | None = None
    title: str | None = None
    context: str | None = None
    total_questions: int
    questions: list[Question] = Field(default_factory=list)


class TestPart(BaseModel):
    """A sub-test: one reading passage or one listening track."""

    id: str
    part_id: str | None = None
    position: int
    title: str | None = None
    passage_html: str | None = None
    questions_html: str | None = None
    audio_links: list[str] = Field(default_factory=list)


class TestSummary(BaseModel):
    """A row of the test listing."""

    id: str
    crawl_id: str
    content_type: ContentType
    title: str
    original_link: str
    info: TestInfo = Field(default_factory=TestInfo)
    created_at: datetime


class TestDetail(TestSummary):
    """A test with its parts and audio sources."""

    part_id: str | None = None
    audio_links: list[str] = Field(default_factory=list)
    parts: list[TestPart] = Field(default_factory=list)
    updated_at: datetime


class TestPage(BaseModel):
    """Paginated listing response."""

    data: list[TestSummary]
    page: int
    limit: int
    total: int
    total_pages: int


class AnswerRecord(BaseModel):
    """A canonical answer used for grading."""

    id: str
    test_id: str
    part_id: str | None = None
    question_id: str
    number: int
    answer: str
    created_at: datetime
    updated_at: datetime


class AnswerImport(BaseModel):
    """One canonical answer supplied by an import."""

    question_id: str
    number: int
    answer: str
    part_id: str | None = None


class SubmittedAnswer(BaseModel):
    """Candidate values a user gave for one question."""

    question_id: str
    values: list[str] = Field(default_factory=list)


class SubmittedPart(BaseModel):
    """Answers for one sub-test of a submission."""

    part_id: str | None = None
    answers: list[SubmittedAnswer] = Field(default_factory=list)


class Submission(BaseModel):
    """A user's answers for a whole test."""

    parts: list[SubmittedPart] = Field(default_factory=list)


class GradedAnswer(BaseModel):
    """Verdict for one canonical answer."""

    question_id: str
    part_id: str | None = None
    number: int
    canonical_answer: str
    submitted_values: list[str] = Field(default_factory=list)
    correct: bool = False
    category: str = "NOT DONE"
    explanation: str = "NOT DONE"
