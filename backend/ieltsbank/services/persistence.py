"""Transactional writes of crawled tests and answer keys."""

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ieltsbank.crawlers.models import CrawledTest, SaveOutcome
from ieltsbank.db.models import (
    AnswerRecordDB,
    QuestionDB,
    QuestionGroupDB,
    TestDB,
    TestPartDB,
)
from ieltsbank.errors import NotFoundError, PersistenceError
from ieltsbank.models.test import AnswerImport

logger = logging.getLogger(__name__)


class PersistenceGateway:
    """Idempotent writer keyed by a test's crawl id.

    Each call runs in its own transaction: begun explicitly, committed on
    success, rolled back on any error, and the session always closed.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def save(self, crawled: CrawledTest) -> SaveOutcome:
        """Create a test with its parts, groups and questions.

        A test whose crawl id is already stored is reused as-is: its fields
        are not refreshed and no child rows are written.

        Raises:
            PersistenceError: the transaction failed and was rolled back
        """
        session = self.session_factory()
        await session.begin()
        try:
            existing = await session.scalar(
                select(TestDB).where(TestDB.crawl_id == crawled.crawl_id)
            )
            if existing is not None:
                outcome = SaveOutcome(
                    test_id=existing.id, crawl_id=crawled.crawl_id, created=False
                )
                await session.commit()
                logger.info(
                    f"Test {crawled.crawl_id} already stored as {outcome.test_id}, reusing it"
                )
                return outcome

            outcome = await self._insert_test(session, crawled)
            await session.commit()
        except Exception:
            await session.rollback()
            logger.exception(f"Error saving test {crawled.crawl_id}, rolled back")
            raise PersistenceError("Failed to save test") from None
        finally:
            await session.close()

        logger.info(
            f"Saved test {crawled.crawl_id}: {outcome.groups_saved} groups, "
            f"{outcome.questions_saved} questions, {outcome.answers_saved} answers"
        )
        return outcome

    async def _insert_test(self, session: AsyncSession, crawled: CrawledTest) -> SaveOutcome:
        test = TestDB(
            crawl_id=crawled.crawl_id,
            part_id=crawled.part_id,
            content_type=crawled.content_type.value,
            title=crawled.title,
            original_link=crawled.original_link,
        )
        test.set_info(crawled.info.to_dict())
        test.set_audio_links(crawled.audio_links)
        session.add(test)
        await session.flush()

        outcome = SaveOutcome(test_id=test.id, crawl_id=crawled.crawl_id, created=True)
        group_position = 0

        for position, section in enumerate(crawled.sections):
            part = TestPartDB(
                test_id=test.id,
                part_id=section.part_id,
                position=position,
                title=section.title or None,
                passage_html=section.passage_html,
                questions_html=section.questions_html,
            )
            part.set_audio_links(section.audio_links)
            session.add(part)

            for group in section.groups:
                if not group.questions:
                    logger.warning(
                        f"No questions found for a group of part {section.part_id} "
                        f"in test {crawled.crawl_id}, skipping it"
                    )
                    continue

                questions = []
                for parsed in group.questions:
                    question = QuestionDB(
                        external_id=parsed.external_id or None,
                        number=parsed.number,
                        text=parsed.text,
                        type=parsed.type.value,
                        answer=parsed.answer,
                    )
                    question.set_options(
                        [o.to_dict() for o in parsed.options]
                        if parsed.options is not None
                        else None
                    )
                    questions.append(question)

                db_group = QuestionGroupDB(
                    test_id=test.id,
                    part_id=section.part_id,
                    position=group_position,
                    title=group.title,
                    context=group.context,
                )
                db_group.set_questions(questions)
                session.add(db_group)
                await session.flush()
                group_position += 1

                outcome.groups_saved += 1
                outcome.questions_saved += len(questions)

                for question in questions:
                    if question.answer is None:
                        continue
                    session.add(
                        AnswerRecordDB(
                            test_id=test.id,
                            part_id=section.part_id,
                            question_id=question.id,
                            number=question.number,
                            answer=question.answer,
                        )
                    )
                    outcome.answers_saved += 1

        await session.flush()
        return outcome

    async def import_answers(self, test_id: str, entries: list[AnswerImport]) -> int:
        """Create or update canonical answers for a test.

        Records are matched on (test_id, question_id); an existing record gets
        the new answer, number and part.

        Returns:
            Number of records written

        Raises:
            NotFoundError: no test with that id
            PersistenceError: the transaction failed and was rolled back
        """
        session = self.session_factory()
        await session.begin()
        try:
            test = await session.get(TestDB, test_id)
            if test is None:
                raise NotFoundError(f"Test {test_id} not found")

            result = await session.execute(
                select(AnswerRecordDB).where(AnswerRecordDB.test_id == test_id)
            )
            existing = {r.question_id: r for r in result.scalars().all()}

            for entry in entries:
                record = existing.get(entry.question_id)
                if record is None:
                    record = AnswerRecordDB(test_id=test_id, question_id=entry.question_id)
                    session.add(record)
                    existing[entry.question_id] = record
                record.number = entry.number
                record.answer = entry.answer
                record.part_id = entry.part_id
                record.updated_at = datetime.utcnow()

            await session.commit()
        except NotFoundError:
            await session.rollback()
            raise
        except Exception:
            await session.rollback()
            logger.exception(f"Error importing answers for test {test_id}, rolled back")
            raise PersistenceError("Failed to import answers") from None
        finally:
            await session.close()

        logger.info(f"Imported {len(entries)} answers for test {test_id}")
        return len(entries)
