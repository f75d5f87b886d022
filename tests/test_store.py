import asyncio
import json
import pytest

sqlalchemy = pytest.importorskip("sqlalchemy")
from sqlalchemy import select
from recall.db import ensure_schema, make_engine, make_sessionmaker
from recall.grader import GradingMethod, JudgeVerdict
from recall.models import LearningSessionRow, QuestionResultRow
from recall.questions import Question, QuestionKind
from recall.session import LearningSession, SessionState
from recall.store import QuestionStore, SessionStore


class FixedJudge:
    async def __call__(self, *, prompt, student_answer, reference_content, timeout):
        return JudgeVerdict(75.0, "close", "add detail")


async def _setup_session():
    engine = make_engine("sqlite+aiosqlite:///:memory:")
    await ensure_schema(engine)
    Session = make_sessionmaker(engine)
    return engine, Session


def _questions():
    return [
        Question(id="q1", prompt="Water formula?", kind=QuestionKind.MULTIPLE_CHOICE,
                 correct_answer="H2O", options=("CO2", "H2O", "O2")),
        Question(id="q2", prompt="Explain osmosis", kind=QuestionKind.SHORT_ANSWER,
                 correct_answer="Water moves across a membrane", explanation="Biology 101"),
        Question(id="q3", prompt="The sun is a star", kind=QuestionKind.TRUE_FALSE, correct_answer="True"),
    ]


def test_session_round_trip_mid_session():
    async def _run():
        engine, Session = await _setup_session()
        store = SessionStore(Session)
        session = LearningSession.create(_questions(), content_id="bio")
        await store.save(session)
        await session.submit_answer("B", 4)
        await session.submit_answer("water crosses membranes", 20, judge=FixedJudge())
        await store.save(session)

        loaded = await store.load(session.id)
        assert loaded is not None
        assert loaded.content_id == "bio"
        assert loaded.state == SessionState.IN_PROGRESS
        assert loaded.current_index == 2
        assert [q.id for q in loaded.questions] == ["q1", "q2", "q3"]
        assert loaded.questions[0].options == ("CO2", "H2O", "O2")
        assert [r.score for r in loaded.results] == [10.0, 7.5]
        assert loaded.results[1].method == GradingMethod.AI
        assert loaded.results[1].grading_detail.suggestions == "add detail"
        assert loaded.started_at.tzinfo is not None

        await loaded.submit_answer("True", 2)
        await store.save(loaded)
        done = await store.load(session.id)
        assert done.is_completed
        assert done.completed_at is not None
        assert done.total_score == pytest.approx(27.5)
        await engine.dispose()

    asyncio.run(_run())


def test_result_rows_are_insert_only():
    async def _run():
        engine, Session = await _setup_session()
        store = SessionStore(Session)
        session = LearningSession.create(_questions()[:1] + _questions()[2:])
        await session.submit_answer("H2O", 1)
        await store.save(session)
        await store.save(session)
        await session.submit_answer("False", 1)
        await store.save(session)

        async with Session() as s:
            rows = (await s.execute(
                select(QuestionResultRow).order_by(QuestionResultRow.position)
            )).scalars().all()
            srow = await s.get(LearningSessionRow, session.id)
        assert [r.position for r in rows] == [0, 1]
        assert [r.is_correct for r in rows] == [True, False]
        assert srow.status == "completed"
        assert srow.correct_answers == 1
        assert srow.total_questions == 2
        assert len(json.loads(srow.questions_json)) == 2
        await engine.dispose()

    asyncio.run(_run())


def test_load_missing_session_returns_none():
    async def _run():
        engine, Session = await _setup_session()
        assert await SessionStore(Session).load("nope") is None
        await engine.dispose()

    asyncio.run(_run())


def test_question_store_replace_and_order():
    async def _run():
        engine, Session = await _setup_session()
        store = QuestionStore(Session)
        assert await store.replace_questions("bio", _questions()) == 3
        loaded = await store.load_questions("bio")
        assert [q.id for q in loaded] == ["q1", "q2", "q3"]
        assert loaded[0].kind == QuestionKind.MULTIPLE_CHOICE
        assert loaded[1].explanation == "Biology 101"
        assert loaded[2].options == ()

        assert await store.replace_questions("bio", list(reversed(_questions()))[:2]) == 2
        loaded = await store.load_questions("bio")
        assert [q.id for q in loaded] == ["q3", "q2"]
        assert await store.load_questions("other") == []
        await engine.dispose()

    asyncio.run(_run())


async def _play(store, answers, *, content_id, times=(1, 2, 3)):
    session = LearningSession.create(_questions(), content_id=content_id)
    for answer, t in zip(answers, times):
        await session.submit_answer(answer, t, judge=FixedJudge())
    await store.save(session)
    return session


def test_active_session_for_content():
    async def _run():
        engine, Session = await _setup_session()
        store = SessionStore(Session)
        await _play(store, ["B", "osmosis", "True"], content_id="bio")
        open_one = await _play(store, ["B"], content_id="bio")
        await _play(store, ["A"], content_id="chem")

        active = await store.active_for_content("bio")
        assert active.id == open_one.id
        assert active.current_index == 1
        assert active.current_question().id == "q2"
        assert await store.active_for_content("physics") is None

        await active.submit_answer("osmosis", 2, judge=FixedJudge())
        await active.submit_answer("True", 3)
        await store.save(active)
        assert await store.active_for_content("bio") is None
        await engine.dispose()

    asyncio.run(_run())


def test_content_stats_cover_completed_sessions():
    async def _run():
        engine, Session = await _setup_session()
        store = SessionStore(Session)
        await _play(store, ["B", "osmosis", "True"], content_id="bio")
        await _play(store, ["A", "osmosis", "False"], content_id="bio")
        await _play(store, ["B"], content_id="bio", times=(40,))

        stats = await store.content_stats("bio")
        assert stats.total_sessions == 3
        assert stats.completed_sessions == 2
        # (27.5 / 3 + 7.5 / 3) / 2
        assert stats.average_score == pytest.approx(35.0 / 6)
        assert stats.total_time_seconds == pytest.approx(12.0)
        assert stats.last_studied is not None
        assert stats.last_studied.tzinfo is not None

        empty = await store.content_stats("none")
        assert (empty.total_sessions, empty.completed_sessions, empty.average_score) == (0, 0, 0.0)
        assert empty.last_studied is None
        await engine.dispose()

    asyncio.run(_run())


def test_grading_detail_stored_as_json():
    async def _run():
        engine, Session = await _setup_session()
        store = SessionStore(Session)
        session = await _play(store, ["B", "osmosis"], content_id="bio")
        async with Session() as s:
            rows = (await s.execute(
                select(QuestionResultRow)
                .where(QuestionResultRow.session_id == session.id)
                .order_by(QuestionResultRow.position)
            )).scalars().all()
        assert rows[0].grading_detail_json is None
        assert json.loads(rows[1].grading_detail_json) == {
            "percentage": 75.0,
            "rationale": "close",
            "suggestions": "add detail",
            "degraded": False,
        }
        await engine.dispose()

    asyncio.run(_run())
