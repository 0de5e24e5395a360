"""Read access to stored tests, questions and answer keys."""

import logging
import math

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ieltsbank.config import settings
from ieltsbank.db.models import AnswerRecordDB, QuestionGroupDB, TestDB
from ieltsbank.errors import BadRequestError, NotFoundError
from ieltsbank.models.test import (
    AnswerRecord,
    ContentType,
    Question,
    QuestionGroup,
    QuestionType,
    RadioOption,
    TestDetail,
    TestInfo,
    TestPage,
    TestPart,
    TestSummary,
)

logger = logging.getLogger(__name__)


class TestBankService:
    """Service for browsing the test bank."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_tests(
        self,
        page: int = 1,
        limit: int | None = None,
        keyword: str | None = None,
        content_type: ContentType | None = None,
    ) -> TestPage:
        """List tests, oldest first, optionally filtered by title keyword."""
        limit = limit or settings.default_page_size
        if page < 1 or limit < 1 or limit > settings.max_page_size:
            raise BadRequestError(
                f"page must be >= 1 and limit between 1 and {settings.max_page_size}"
            )

        query = select(TestDB)
        if keyword:
            query = query.where(TestDB.title.ilike(f"%{keyword}%"))
        if content_type:
            query = query.where(TestDB.content_type == content_type.value)

        total = await self.db.scalar(select(func.count()).select_from(query.subquery()))
        result = await self.db.execute(
            query.order_by(TestDB.created_at).offset((page - 1) * limit).limit(limit)
        )

        return TestPage(
            data=[self._to_summary(t) for t in result.scalars().all()],
            page=page,
            limit=limit,
            total=total or 0,
            total_pages=math.ceil((total or 0) / limit),
        )

    async def get_test(self, test_id: str) -> TestDetail | None:
        """Get a single test with its parts."""
        result = await self.db.execute(
            select(TestDB).where(TestDB.id == test_id).options(selectinload(TestDB.parts))
        )
        test = result.scalar_one_or_none()
        if not test:
            return None

        return TestDetail(
            **self._to_summary(test).model_dump(),
            part_id=test.part_id,
            audio_links=test.get_audio_links(),
            parts=[
                TestPart(
                    id=p.id,
                    part_id=p.part_id,
                    position=p.position,
                    title=p.title,
                    passage_html=p.passage_html,
                    questions_html=p.questions_html,
                    audio_links=p.get_audio_links(),
                )
                for p in test.parts
            ],
            updated_at=test.updated_at,
        )

    async def get_questions(self, test_id: str) -> list[QuestionGroup] | None:
        """Get question groups of a test, or None if the test does not exist."""
        if await self.db.get(TestDB, test_id) is None:
            return None

        result = await self.db.execute(
            select(QuestionGroupDB)
            .where(QuestionGroupDB.test_id == test_id)
            .options(selectinload(QuestionGroupDB.questions))
            .order_by(QuestionGroupDB.position)
        )
        groups = []
        for group in result.scalars().all():
            groups.append(
                QuestionGroup(
                    id=group.id,
                    part_id=group.part_id,
                    title=group.title,
                    context=group.context,
                    total_questions=group.total_questions,
                    questions=[
                        Question(
                            id=q.id,
                            number=q.number,
                            type=QuestionType(q.type),
                            text=q.text,
                            options=[RadioOption(**o) for o in q.get_options()]
                            if q.get_options() is not None
                            else None,
                        )
                        for q in group.questions
                    ],
                )
            )
        return groups

    async def get_answers(
        self,
        test_ids: list[str] | None = None,
        test_id: str | None = None,
    ) -> list[AnswerRecord]:
        """Get canonical answers for several tests or for one test.

        Raises:
            BadRequestError: neither test_ids nor test_id given
            NotFoundError: test_id does not exist
        """
        if test_ids:
            query = select(AnswerRecordDB).where(AnswerRecordDB.test_id.in_(test_ids))
        elif test_id:
            if await self.db.get(TestDB, test_id) is None:
                raise NotFoundError(f"No test found for test_id {test_id}")
            query = select(AnswerRecordDB).where(AnswerRecordDB.test_id == test_id)
        else:
            raise BadRequestError("Must provide either test_ids or test_id")

        result = await self.db.execute(
            query.order_by(AnswerRecordDB.test_id, AnswerRecordDB.number)
        )
        return [
            AnswerRecord(
                id=r.id,
                test_id=r.test_id,
                part_id=r.part_id,
                question_id=r.question_id,
                number=r.number,
                answer=r.answer,
                created_at=r.created_at,
                updated_at=r.updated_at,
            )
            for r in result.scalars().all()
        ]

    async def delete_test(self, test_id: str) -> bool:
        """Delete a test with its parts, groups, questions and answer records."""
        test = await self.db.get(TestDB, test_id)
        if test is None:
            return False
        # answer records reference the test by id only, no FK cascade
        await self.db.execute(delete(AnswerRecordDB).where(AnswerRecordDB.test_id == test_id))
        await self.db.delete(test)
        await self.db.flush()
        logger.info(f"Deleted test {test_id}")
        return True

    def _to_summary(self, test: TestDB) -> TestSummary:
        return TestSummary(
            id=test.id,
            crawl_id=test.crawl_id,
            content_type=ContentType(test.content_type),
            title=test.title,
            original_link=test.original_link,
            info=TestInfo(**test.get_info()),
            created_at=test.created_at,
        )
