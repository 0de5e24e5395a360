"""Pydantic models for the IELTS Test Bank application."""

from .test import (
    AnswerImport,
    AnswerRecord,
    ContentType,
    GradedAnswer,
    Question,
    QuestionGroup,
    QuestionType,
    RadioOption,
    Submission,
    SubmittedAnswer,
    SubmittedPart,
    TestDetail,
    TestInfo,
    TestPage,
    TestPart,
    TestSummary,
)

__all__ = [
    "AnswerImport",
    "AnswerRecord",
    "ContentType",
    "GradedAnswer",
    "Question",
    "QuestionGroup",
    "QuestionType",
    "RadioOption",
    "Submission",
    "SubmittedAnswer",
    "SubmittedPart",
    "TestDetail",
    "TestInfo",
    "TestPage",
    "TestPart",
    "TestSummary",
]
