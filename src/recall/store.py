from __future__ import annotations

import datetime as dt
import json
import logging
from dataclasses import dataclass
from typing import Iterable

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .grader import GradingDetail, GradingMethod
from .models import LearningSessionRow, QuestionResultRow, QuestionRow
from .questions import Question
from .session import LearningSession, QuestionResult, SessionState, parse_dt

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContentStats:
    content_id: str
    total_sessions: int
    completed_sessions: int
    average_score: float  # 0-10, completed sessions only
    total_time_seconds: float  # completed sessions only
    last_studied: dt.datetime | None


def _options_json(options: tuple[str, ...]) -> str | None:
    if not options:
        return None
    return json.dumps(list(options), ensure_ascii=False)

def _parse_options(raw: str | None) -> list[str]:
    if not raw:
        return []
    try:
        val = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("question_options_unreadable raw_len=%s", len(raw))
        return []
    if isinstance(val, list):
        return [str(x) for x in val]
    return []

def _row_to_question(row: QuestionRow) -> Question:
    return Question(
        id=row.id,
        prompt=row.prompt,
        kind=row.kind,
        correct_answer=row.correct_answer,
        explanation=row.explanation or "",
        options=tuple(_parse_options(row.options_json)),
    )

def _detail_json(detail: GradingDetail | None) -> str | None:
    if detail is None:
        return None
    return json.dumps(detail.to_dict(), ensure_ascii=False)

def _parse_detail(raw: str | None) -> GradingDetail | None:
    if not raw:
        return None
    return GradingDetail.from_dict(json.loads(raw))

def _row_to_result(row: QuestionResultRow) -> QuestionResult:
    return QuestionResult(
        question_id=row.question_id,
        user_answer=row.user_answer,
        time_spent_seconds=row.time_spent_seconds or 0.0,
        submitted_at=parse_dt(row.submitted_at),
        score=row.score,
        is_correct=bool(row.is_correct),
        method=GradingMethod(row.method),
        grading_detail=_parse_detail(row.grading_detail_json),
    )


class QuestionStore:
    """Content-side question source backed by the ``questions`` table."""

    def __init__(self, sessionmaker: async_sessionmaker[AsyncSession]):
        self.sessionmaker = sessionmaker

    async def load_questions(self, content_id: str) -> list[Question]:
        async with self.sessionmaker() as s:
            rows = (await s.execute(
                select(QuestionRow)
                .where(QuestionRow.content_id == content_id)
                .order_by(QuestionRow.order_index, QuestionRow.id)
            )).scalars().all()
        return [_row_to_question(r) for r in rows]

    async def replace_questions(self, content_id: str, questions: Iterable[Question]) -> int:
        count = 0
        async with self.sessionmaker() as s:
            await s.execute(delete(QuestionRow).where(QuestionRow.content_id == content_id))
            for i, q in enumerate(questions, start=1):
                s.add(QuestionRow(
                    id=q.id,
                    content_id=content_id,
                    order_index=i,
                    kind=q.kind.value,
                    prompt=q.prompt,
                    options_json=_options_json(q.options),
                    correct_answer=q.correct_answer,
                    explanation=q.explanation,
                ))
                count += 1
            await s.commit()
        return count


class SessionStore:
    """Persists sessions keyed by id; result rows are insert-only."""

    def __init__(self, sessionmaker: async_sessionmaker[AsyncSession]):
        self.sessionmaker = sessionmaker

    async def save(self, session: LearningSession) -> None:
        async with self.sessionmaker() as s:
            row = await s.get(LearningSessionRow, session.id)
            if row is None:
                row = LearningSessionRow(
                    id=session.id,
                    content_id=session.content_id,
                    questions_json=json.dumps(
                        [q.to_dict() for q in session.questions], ensure_ascii=False
                    ),
                    total_questions=len(session.questions),
                    started_at=session.started_at,
                )
                s.add(row)
            row.current_index = session.current_index
            row.correct_answers = session.correct_count
            row.total_score = session.total_score
            row.total_time_seconds = session.total_time_seconds
            row.status = session.state.value
            row.completed_at = session.completed_at

            stored = (await s.execute(
                select(func.count(QuestionResultRow.id)).where(
                    QuestionResultRow.session_id == session.id
                )
            )).scalar_one()
            results = session.results
            for position in range(stored, len(results)):
                r = results[position]
                s.add(QuestionResultRow(
                    session_id=session.id,
                    position=position,
                    question_id=r.question_id,
                    user_answer=r.user_answer,
                    time_spent_seconds=r.time_spent_seconds,
                    submitted_at=r.submitted_at,
                    score=r.score,
                    is_correct=r.is_correct,
                    method=r.method.value,
                    grading_detail_json=_detail_json(r.grading_detail),
                ))
            await s.commit()

    async def load(self, session_id: str) -> LearningSession | None:
        async with self.sessionmaker() as s:
            row = await s.get(LearningSessionRow, session_id)
            if row is None:
                return None
            result_rows = (await s.execute(
                select(QuestionResultRow)
                .where(QuestionResultRow.session_id == session_id)
                .order_by(QuestionResultRow.position)
            )).scalars().all()
        questions = [Question.from_dict(q) for q in json.loads(row.questions_json)]
        return LearningSession(
            questions,
            id=row.id,
            content_id=row.content_id,
            started_at=parse_dt(row.started_at),
            completed_at=parse_dt(row.completed_at),
            results=[_row_to_result(r) for r in result_rows],
        )

    async def active_for_content(self, content_id: str) -> LearningSession | None:
        """Most recently started unfinished session for ``content_id``."""
        async with self.sessionmaker() as s:
            session_id = (await s.execute(
                select(LearningSessionRow.id)
                .where(
                    LearningSessionRow.content_id == content_id,
                    LearningSessionRow.status != SessionState.COMPLETED.value,
                )
                .order_by(LearningSessionRow.started_at.desc(), LearningSessionRow.id.desc())
                .limit(1)
            )).scalar_one_or_none()
        if session_id is None:
            return None
        return await self.load(session_id)

    async def content_stats(self, content_id: str) -> ContentStats:
        row = LearningSessionRow
        async with self.sessionmaker() as s:
            total, last_started = (await s.execute(
                select(func.count(row.id), func.max(row.started_at))
                .where(row.content_id == content_id)
            )).one()
            completed, avg_score, total_time = (await s.execute(
                select(
                    func.count(row.id),
                    func.avg(row.total_score / row.total_questions),
                    func.sum(row.total_time_seconds),
                )
                .where(row.content_id == content_id, row.status == SessionState.COMPLETED.value)
            )).one()
        return ContentStats(
            content_id=content_id,
            total_sessions=total or 0,
            completed_sessions=completed or 0,
            average_score=float(avg_score or 0.0),
            total_time_seconds=float(total_time or 0.0),
            last_studied=parse_dt(last_started),
        )
