"""Database layer for the IELTS Test Bank application."""

from .database import async_session, engine, get_db, init_db
from .models import AnswerRecordDB, Base, QuestionDB, QuestionGroupDB, TestDB, TestPartDB

__all__ = [
    "get_db",
    "init_db",
    "engine",
    "async_session",
    "Base",
    "TestDB",
    "TestPartDB",
    "QuestionGroupDB",
    "QuestionDB",
    "AnswerRecordDB",
]
