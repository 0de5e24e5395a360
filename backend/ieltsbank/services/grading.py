"""Grading of submitted answers against the stored answer key."""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ieltsbank.db.models import AnswerRecordDB, TestDB
from ieltsbank.errors import BadRequestError, NotFoundError
from ieltsbank.models.test import GradedAnswer, SubmittedPart

logger = logging.getLogger(__name__)

CORRECT_CATEGORY = "TRUE FALSE NOT GIVEN"
PENDING_CATEGORY = "NOT DONE"


class GradingService:
    """Compares a submission with canonical answers, one verdict per answer."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def grade(
        self,
        test_id: str | None,
        submission: list[SubmittedPart],
    ) -> list[GradedAnswer]:
        """Grade a submission.

        Every canonical answer gets a result row, initially incorrect. A row
        becomes correct when the submitted values for its question contain the
        canonical answer. Parts or questions without a canonical match are
        ignored.

        Args:
            test_id: Test being answered
            submission: Submitted answers grouped by part

        Returns:
            Verdicts grouped by part, in the order the parts are stored

        Raises:
            BadRequestError: no test id given
            NotFoundError: the test does not exist
        """
        if not test_id:
            raise BadRequestError("test_id is required")

        result = await self.db.execute(
            select(TestDB).where(TestDB.id == test_id).options(selectinload(TestDB.parts))
        )
        test = result.scalar_one_or_none()
        if test is None:
            raise NotFoundError(f"Test {test_id} not found")

        records = await self.db.execute(
            select(AnswerRecordDB)
            .where(AnswerRecordDB.test_id == test_id)
            .order_by(AnswerRecordDB.number, AnswerRecordDB.created_at)
        )

        # part id -> question id -> verdict row, parts in stored order
        results: dict[str | None, dict[str, GradedAnswer]] = {
            part.part_id: {} for part in test.parts
        }
        for record in records.scalars().all():
            rows = results.setdefault(record.part_id, {})
            if record.question_id in rows:
                logger.warning(
                    f"Duplicate answer record for question {record.question_id} "
                    f"in test {test_id}, ignoring it"
                )
                continue
            rows[record.question_id] = GradedAnswer(
                question_id=record.question_id,
                part_id=record.part_id,
                number=record.number,
                canonical_answer=record.answer,
                category=PENDING_CATEGORY,
                explanation=PENDING_CATEGORY,
            )

        for part in submission:
            rows = results.get(part.part_id)
            if rows is None:
                continue
            for answer in part.answers:
                row = rows.get(answer.question_id)
                if row is None:
                    continue
                # repeated entries for one question are pooled before judging
                row.submitted_values.extend(answer.values)
                row.correct = row.canonical_answer in row.submitted_values
                row.category = CORRECT_CATEGORY if row.correct else PENDING_CATEGORY

        graded = [row for rows in results.values() for row in rows.values()]
        logger.info(
            f"Graded test {test_id}: {sum(r.correct for r in graded)}/{len(graded)} correct"
        )
        return graded
