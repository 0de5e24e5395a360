"""Test bank API endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ieltsbank.db import get_db
from ieltsbank.errors import BadRequestError, NotFoundError
from ieltsbank.models.test import (
    AnswerRecord,
    ContentType,
    GradedAnswer,
    QuestionGroup,
    Submission,
    TestDetail,
    TestPage,
)
from ieltsbank.services.grading import GradingService
from ieltsbank.services.test_bank import TestBankService

router = APIRouter(prefix="/api/tests", tags=["tests"])


@router.get("", response_model=TestPage)
async def list_tests(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    keyword: str | None = None,
    content_type: ContentType | None = None,
    db: AsyncSession = Depends(get_db),
):
    """List stored tests with optional title search."""
    service = TestBankService(db)
    try:
        return await service.list_tests(page, limit, keyword, content_type)
    except BadRequestError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/answers", response_model=list[AnswerRecord])
async def get_answers(
    test_ids: list[str] | None = Query(None),
    test_id: str | None = None,
    db: AsyncSession = Depends(get_db),
):
    """Get canonical answers by a list of test ids or a single test id."""
    service = TestBankService(db)
    try:
        return await service.get_answers(test_ids=test_ids, test_id=test_id)
    except BadRequestError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/{test_id}", response_model=TestDetail)
async def get_test(
    test_id: str,
    db: AsyncSession = Depends(get_db),
):
    """Get a single test by ID."""
    service = TestBankService(db)
    test = await service.get_test(test_id)
    if not test:
        raise HTTPException(status_code=404, detail="Test not found")
    return test


@router.get("/{test_id}/questions", response_model=list[QuestionGroup])
async def get_questions(
    test_id: str,
    db: AsyncSession = Depends(get_db),
):
    """Get the question groups of a test."""
    service = TestBankService(db)
    groups = await service.get_questions(test_id)
    if not groups:
        raise HTTPException(status_code=404, detail="No questions found for this test")
    return groups


@router.post("/{test_id}/submit", response_model=list[GradedAnswer])
async def submit_answers(
    test_id: str,
    submission: Submission,
    db: AsyncSession = Depends(get_db),
):
    """Grade a submission against the stored answer key."""
    service = GradingService(db)
    try:
        return await service.grade(test_id, submission.parts)
    except BadRequestError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.delete("/{test_id}", status_code=204)
async def delete_test(
    test_id: str,
    db: AsyncSession = Depends(get_db),
):
    """Delete a test together with its parts, groups and questions."""
    service = TestBankService(db)
    if not await service.delete_test(test_id):
        raise HTTPException(status_code=404, detail="Test not found")
