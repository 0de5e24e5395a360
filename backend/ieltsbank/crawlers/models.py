"""Data models for crawler operations.

These are the typed results of the extraction step. Every optional field has
its default here, so consumers never need to guess at missing markup.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from ieltsbank.models.test import ContentType, QuestionType


@dataclass
class ItemInfo:
    """Metadata read from the icons of a listing card. Missing fields are ''."""

    duration: str = ""
    attempts: str = ""
    comments: str = ""

    def to_dict(self) -> dict[str, str]:
        return {
            "duration": self.duration,
            "attempts": self.attempts,
            "comments": self.comments,
        }


@dataclass
class ListingItem:
    """One card of a listing page."""

    link: str
    title: str
    info: ItemInfo = field(default_factory=ItemInfo)


@dataclass
class PartRef:
    """A part discovered on a test's overview page."""

    part_id: str


@dataclass
class ParsedOption:
    value: str
    label: str

    def to_dict(self) -> dict[str, str]:
        return {"value": self.value, "label": self.label}


@dataclass
class ParsedQuestion:
    """A question as extracted from a detail page."""

    number: int
    text: str
    type: QuestionType = QuestionType.TEXT
    options: list[ParsedOption] | None = None
    answer: str | None = None
    external_id: str = ""


@dataclass
class ParsedGroup:
    """A question group. total_questions is derived, never set by hand."""

    questions: list[ParsedQuestion] = field(default_factory=list)
    context: str | None = None
    title: str | None = None

    @property
    def total_questions(self) -> int:
        return len(self.questions)


@dataclass
class ReadingSection:
    """One two-column section of a reading practice page."""

    title: str
    passage_html: str
    questions_html: str
    groups: list[ParsedGroup] = field(default_factory=list)


@dataclass
class ListeningSection:
    """One track of a listening practice page."""

    groups: list[ParsedGroup] = field(default_factory=list)
    audio_links: list[str] = field(default_factory=list)
    title: str = ""


@dataclass
class CrawledSection:
    """A section paired with the part id it was crawled from."""

    part_id: str | None
    title: str = ""
    passage_html: str | None = None
    questions_html: str | None = None
    audio_links: list[str] = field(default_factory=list)
    groups: list[ParsedGroup] = field(default_factory=list)


@dataclass
class CrawledTest:
    """Everything persisted for one listing item."""

    crawl_id: str
    content_type: ContentType
    title: str
    original_link: str
    info: ItemInfo = field(default_factory=ItemInfo)
    part_id: str | None = None
    audio_links: list[str] = field(default_factory=list)
    sections: list[CrawledSection] = field(default_factory=list)

    @property
    def total_questions(self) -> int:
        return sum(g.total_questions for s in self.sections for g in s.groups)


@dataclass
class SaveOutcome:
    """What the persistence gateway did with a crawled test."""

    test_id: str
    crawl_id: str
    created: bool
    groups_saved: int = 0
    questions_saved: int = 0
    answers_saved: int = 0


@dataclass
class CrawlResult:
    """Result of a crawl operation."""

    content_type: ContentType

    # Stats
    pages_crawled: int = 0
    items_found: int = 0
    tests_created: int = 0
    tests_reused: int = 0
    questions_saved: int = 0
    errors: list[str] = field(default_factory=list)

    # Timing
    started_at: datetime = field(default_factory=datetime.utcnow)
    completed_at: datetime | None = None

    @property
    def duration_seconds(self) -> float:
        """Get crawl duration in seconds."""
        if self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return 0.0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "content_type": self.content_type.value,
            "pages_crawled": self.pages_crawled,
            "items_found": self.items_found,
            "tests_created": self.tests_created,
            "tests_reused": self.tests_reused,
            "questions_saved": self.questions_saved,
            "errors": self.errors,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }

    def summary(self) -> str:
        """Get human-readable summary."""
        lines = [
            f"Crawl Result: {self.content_type.value}",
            f"  Pages crawled: {self.pages_crawled}",
            f"  Items found: {self.items_found}",
            f"  Tests created: {self.tests_created}",
            f"  Tests already stored: {self.tests_reused}",
            f"  Questions saved: {self.questions_saved}",
            f"  Duration: {self.duration_seconds:.1f}s",
        ]
        if self.errors:
            lines.append(f"  Errors: {len(self.errors)}")
        return "\n".join(lines)
