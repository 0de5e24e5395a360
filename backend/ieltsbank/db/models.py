"""SQLAlchemy database models."""

import json
from datetime import datetime
from uuid import uuid4

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


def generate_uuid() -> str:
    """Generate a UUID string."""
    return str(uuid4())


class TestDB(Base):
    """Crawled reading or listening test."""

    __tablename__ = "tests"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    crawl_id: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    part_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    content_type: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    original_link: Mapped[str] = mapped_column(Text, nullable=False)
    info: Mapped[str] = mapped_column(Text, default="{}")  # JSON object
    audio_links: Mapped[str] = mapped_column(Text, default="[]")  # JSON array
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    # Relationships
    parts: Mapped[list["TestPartDB"]] = relationship(
        back_populates="test",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="TestPartDB.position",
    )
    question_groups: Mapped[list["QuestionGroupDB"]] = relationship(
        back_populates="test",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="QuestionGroupDB.position",
    )

    def get_info(self) -> dict:
        return json.loads(self.info or "{}")

    def set_info(self, info: dict) -> None:
        self.info = json.dumps(info)

    def get_audio_links(self) -> list[str]:
        return json.loads(self.audio_links or "[]")

    def set_audio_links(self, links: list[str]) -> None:
        self.audio_links = json.dumps(links)


class TestPartDB(Base):
    """One part of a test: a reading passage or a listening track."""

    __tablename__ = "test_parts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    test_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("tests.id", ondelete="CASCADE"), nullable=False, index=True
    )
    part_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    position: Mapped[int] = mapped_column(Integer, default=0)
    title: Mapped[str | None] = mapped_column(Text, nullable=True)
    passage_html: Mapped[str | None] = mapped_column(Text, nullable=True)
    questions_html: Mapped[str | None] = mapped_column(Text, nullable=True)
    audio_links: Mapped[str] = mapped_column(Text, default="[]")  # JSON array

    test: Mapped["TestDB"] = relationship(back_populates="parts")

    def get_audio_links(self) -> list[str]:
        return json.loads(self.audio_links or "[]")

    def set_audio_links(self, links: list[str]) -> None:
        self.audio_links = json.dumps(links)


class QuestionGroupDB(Base):
    """Questions sharing one context block."""

    __tablename__ = "question_groups"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    test_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("tests.id", ondelete="CASCADE"), nullable=False, index=True
    )
    part_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    position: Mapped[int] = mapped_column(Integer, default=0)
    title: Mapped[str | None] = mapped_column(Text, nullable=True)
    context: Mapped[str | None] = mapped_column(Text, nullable=True)
    total_questions: Mapped[int] = mapped_column(Integer, default=0)

    # Relationships
    test: Mapped["TestDB"] = relationship(back_populates="question_groups")
    questions: Mapped[list["QuestionDB"]] = relationship(
        back_populates="group",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="QuestionDB.number",
    )

    def set_questions(self, questions: list["QuestionDB"]) -> None:
        """Replace the question list and keep the count in step with it."""
        self.questions = questions
        self.total_questions = len(questions)


class QuestionDB(Base):
    """Question database model."""

    __tablename__ = "questions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    group_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("question_groups.id", ondelete="CASCADE"), nullable=False, index=True
    )
    external_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    number: Mapped[int] = mapped_column(Integer, nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String(20), default="text")
    options: Mapped[str | None] = mapped_column(Text, nullable=True)  # JSON array
    answer: Mapped[str | None] = mapped_column(Text, nullable=True)

    group: Mapped["QuestionGroupDB"] = relationship(back_populates="questions")

    def get_options(self) -> list[dict] | None:
        return json.loads(self.options) if self.options else None

    def set_options(self, options: list[dict] | None) -> None:
        self.options = json.dumps(options) if options is not None else None


class AnswerRecordDB(Base):
    """Canonical answer for one question, referenced by identifier."""

    __tablename__ = "answer_records"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    test_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    part_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    question_id: Mapped[str] = mapped_column(String(127), nullable=False)
    number: Mapped[int] = mapped_column(Integer, nullable=False)
    answer: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    __table_args__ = (
        UniqueConstraint("test_id", "question_id", name="uq_answer_records_test_question"),
    )
