"""Tests for transactional storage of crawled tests and answer keys."""

import pytest
from sqlalchemy import func, select

from ieltsbank.crawlers.models import ParsedGroup, ParsedQuestion
from ieltsbank.db import models as db
from ieltsbank.db.models import AnswerRecordDB, QuestionDB, QuestionGroupDB
from ieltsbank.errors import NotFoundError, PersistenceError
from ieltsbank.models.test import AnswerImport
from ieltsbank.services import test_bank

from .factories import listening_test, reading_test


async def count(session_factory, model) -> int:
    async with session_factory() as session:
        return await session.scalar(select(func.count()).select_from(model))


async def test_save_creates_test_with_children(gateway, session_factory):
    outcome = await gateway.save(reading_test())

    assert outcome.created is True
    assert outcome.groups_saved == 3
    assert outcome.questions_saved == 4
    assert outcome.answers_saved == 0
    assert await count(session_factory, db.TestDB) == 1
    assert await count(session_factory, db.TestPartDB) == 2
    assert await count(session_factory, QuestionGroupDB) == 3
    assert await count(session_factory, QuestionDB) == 4


async def test_group_count_matches_stored_questions(gateway, session_factory):
    await gateway.save(reading_test())

    async with session_factory() as session:
        groups = (await session.scalars(select(QuestionGroupDB))).all()
        for group in groups:
            stored = await session.scalar(
                select(func.count()).select_from(QuestionDB).where(QuestionDB.group_id == group.id)
            )
            assert group.total_questions == stored


async def test_radio_options_are_stored(gateway, session_factory):
    await gateway.save(reading_test())

    async with session_factory() as session:
        question = await session.scalar(select(QuestionDB).where(QuestionDB.number == 3))

    assert question.type == "radio"
    assert [o["value"] for o in question.get_options()] == ["TRUE", "FALSE", "NOT GIVEN"]


async def test_empty_groups_are_skipped(gateway, session_factory, caplog):
    crawled = reading_test()
    crawled.sections[1].groups.insert(0, ParsedGroup(context="Nothing here"))

    with caplog.at_level("WARNING"):
        outcome = await gateway.save(crawled)

    assert outcome.groups_saved == 3
    assert await count(session_factory, QuestionGroupDB) == 3
    assert "No questions found" in caplog.text


async def test_same_crawl_id_is_reused(gateway, session_factory):
    first = await gateway.save(reading_test())
    second = await gateway.save(reading_test(title="A different title"))

    assert second.created is False
    assert second.test_id == first.test_id
    assert second.questions_saved == 0
    assert await count(session_factory, db.TestDB) == 1
    assert await count(session_factory, QuestionGroupDB) == 3

    async with session_factory() as session:
        test = await session.get(db.TestDB, first.test_id)
    assert test.title == "IELTS Reading Practice Test 1"


async def test_failure_rolls_back_everything(gateway, session_factory):
    crawled = reading_test()
    crawled.sections[1].groups.append(
        ParsedGroup(questions=[ParsedQuestion(number=5, text=None)])
    )

    with pytest.raises(PersistenceError) as exc_info:
        await gateway.save(crawled)

    assert str(exc_info.value) == "Failed to save test"
    assert exc_info.value.__cause__ is None
    for model in (db.TestDB, db.TestPartDB, QuestionGroupDB, QuestionDB, AnswerRecordDB):
        assert await count(session_factory, model) == 0


async def test_answers_are_recorded_per_part(gateway, session_factory):
    outcome = await gateway.save(listening_test())

    assert outcome.answers_saved == 3
    async with session_factory() as session:
        records = (
            await session.scalars(select(AnswerRecordDB).order_by(AnswerRecordDB.number))
        ).all()
        question_ids = set((await session.scalars(select(QuestionDB.id))).all())

    assert [(r.part_id, r.number, r.answer) for r in records] == [
        ("7001", 1, "Seaview"),
        ("7001", 2, "TRUE"),
        ("7002", 4, "torch"),
    ]
    assert all(r.question_id in question_ids for r in records)


async def test_delete_cascades_to_children(gateway, session_factory):
    outcome = await gateway.save(reading_test())
    await gateway.save(reading_test(crawl_id="2011"))

    async with session_factory() as session:
        assert await test_bank.TestBankService(session).delete_test(outcome.test_id) is True
        await session.commit()

    assert await count(session_factory, db.TestDB) == 1
    assert await count(session_factory, db.TestPartDB) == 2
    assert await count(session_factory, QuestionGroupDB) == 3
    assert await count(session_factory, QuestionDB) == 4


async def test_delete_removes_answer_records(gateway, session_factory):
    deleted = await gateway.save(listening_test())
    kept = await gateway.save(listening_test(crawl_id="3051"))

    async with session_factory() as session:
        service = test_bank.TestBankService(session)
        assert await service.delete_test(deleted.test_id) is True
        await session.commit()

    async with session_factory() as session:
        remaining = (await session.scalars(select(AnswerRecordDB.test_id))).all()
        answers = await test_bank.TestBankService(session).get_answers(
            test_ids=[deleted.test_id]
        )

    assert set(remaining) == {kept.test_id}
    assert len(remaining) == 3
    assert answers == []


async def test_delete_missing_test(db_session):
    assert await test_bank.TestBankService(db_session).delete_test("no-such-id") is False


async def test_import_answers_upserts(gateway, session_factory):
    outcome = await gateway.save(reading_test())
    async with session_factory() as session:
        question = await session.scalar(select(QuestionDB).where(QuestionDB.number == 3))

    await gateway.import_answers(
        outcome.test_id,
        [AnswerImport(question_id=question.id, number=3, answer="TRUE", part_id="6018")],
    )
    written = await gateway.import_answers(
        outcome.test_id,
        [AnswerImport(question_id=question.id, number=3, answer="NOT GIVEN", part_id="6018")],
    )

    assert written == 1
    async with session_factory() as session:
        records = (await session.scalars(select(AnswerRecordDB))).all()
    assert len(records) == 1
    assert records[0].answer == "NOT GIVEN"
    assert records[0].part_id == "6018"


async def test_import_answers_for_missing_test(gateway, session_factory):
    with pytest.raises(NotFoundError):
        await gateway.import_answers(
            "no-such-id", [AnswerImport(question_id="q", number=1, answer="A")]
        )

    assert await count(session_factory, AnswerRecordDB) == 0
