from __future__ import annotations
import asyncio
import datetime as dt
from dataclasses import dataclass
from enum import Enum
import logging
import uuid
from typing import Any, Iterable

from .errors import EmptyQuestionSet, InvalidQuestionIndex, SessionAlreadyCompleted, SessionNotCompleted
from .grader import DEFAULT_GRADING_TIMEOUT, GradingDetail, GradingMethod, Judge, grade
from .questions import Question

logger = logging.getLogger(__name__)

UTC = dt.timezone.utc
def utcnow() -> dt.datetime:
    return dt.datetime.now(tz=UTC)

def parse_dt(raw: Any) -> dt.datetime | None:
    if raw is None or raw == "":
        return None
    if isinstance(raw, dt.datetime):
        value = raw
    else:
        value = dt.datetime.fromisoformat(str(raw))
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value


class SessionState(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


@dataclass(frozen=True)
class QuestionResult:
    question_id: str
    user_answer: str
    time_spent_seconds: float
    submitted_at: dt.datetime
    score: float | None
    is_correct: bool
    method: GradingMethod
    grading_detail: GradingDetail | None = None

    @property
    def answered(self) -> bool:
        return self.method != GradingMethod.NOT_ANSWERED

    @property
    def degraded(self) -> bool:
        return bool(self.grading_detail and self.grading_detail.degraded)

    def to_dict(self) -> dict[str, Any]:
        detail = self.grading_detail
        return {
            "question_id": self.question_id,
            "user_answer": self.user_answer,
            "time_spent_seconds": self.time_spent_seconds,
            "submitted_at": self.submitted_at.isoformat(),
            "score": self.score,
            "is_correct": self.is_correct,
            "method": self.method.value,
            "grading_detail": None if detail is None else detail.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "QuestionResult":
        raw_detail = data.get("grading_detail")
        detail = GradingDetail.from_dict(raw_detail) if raw_detail else None
        score = data.get("score")
        return cls(
            question_id=str(data["question_id"]),
            user_answer=data.get("user_answer") or "",
            time_spent_seconds=float(data.get("time_spent_seconds") or 0),
            submitted_at=parse_dt(data.get("submitted_at")) or utcnow(),
            score=None if score is None else float(score),
            is_correct=bool(data.get("is_correct")),
            method=GradingMethod(data.get("method") or GradingMethod.AUTOMATIC.value),
            grading_detail=detail,
        )


class LearningSession:
    """One learner's pass over an ordered list of questions.

    The only mutation is :meth:`submit_answer`, which grades the current
    question, appends its result and advances the cursor. Once every question
    has a result the session is completed and rejects further submissions.
    """

    def __init__(
        self,
        questions: Iterable[Question],
        *,
        id: str | None = None,
        content_id: str | None = None,
        started_at: dt.datetime | None = None,
        completed_at: dt.datetime | None = None,
        results: Iterable[QuestionResult] = (),
    ):
        self._questions: tuple[Question, ...] = tuple(questions)
        if not self._questions:
            raise EmptyQuestionSet(content_id)
        self.id = id or uuid.uuid4().hex
        self.content_id = content_id
        self.started_at = started_at or utcnow()
        self._results: list[QuestionResult] = list(results)
        if len(self._results) > len(self._questions):
            raise InvalidQuestionIndex(len(self._results), len(self._questions))
        self._current_index = len(self._results)
        self.completed_at = completed_at
        self.total_score: float = self._sum_scores()
        self._lock = asyncio.Lock()
        if self.completed_at is None and self._current_index == len(self._questions):
            self._finalize()

    @classmethod
    def create(cls, questions: Iterable[Question], *, content_id: str | None = None) -> "LearningSession":
        session = cls(questions, content_id=content_id)
        logger.info(
            "session_started session_id=%s content_id=%s questions=%s",
            session.id,
            content_id,
            len(session.questions),
        )
        return session

    @property
    def questions(self) -> tuple[Question, ...]:
        return self._questions

    @property
    def results(self) -> tuple[QuestionResult, ...]:
        return tuple(self._results)

    @property
    def current_index(self) -> int:
        return self._current_index

    @property
    def is_completed(self) -> bool:
        return self._current_index == len(self._questions)

    @property
    def state(self) -> SessionState:
        if self.is_completed:
            return SessionState.COMPLETED
        if self._current_index == 0:
            return SessionState.NOT_STARTED
        return SessionState.IN_PROGRESS

    @property
    def questions_remaining(self) -> int:
        return len(self._questions) - self._current_index

    @property
    def correct_count(self) -> int:
        return sum(1 for r in self._results if r.is_correct)

    @property
    def score(self) -> float:
        """Average per-question score on the 0-10 scale."""
        return self.total_score / len(self._questions)

    @property
    def total_time_seconds(self) -> float:
        return sum(r.time_spent_seconds for r in self._results)

    def current_question(self) -> Question | None:
        if self.is_completed or not 0 <= self._current_index < len(self._questions):
            return None
        return self._questions[self._current_index]

    def _sum_scores(self) -> float:
        return sum(r.score for r in self._results if r.score is not None)

    def _finalize(self) -> None:
        self.completed_at = self.completed_at or utcnow()
        self.total_score = self._sum_scores()
        logger.info(
            "session_completed session_id=%s correct=%s/%s score=%.2f",
            self.id,
            self.correct_count,
            len(self._questions),
            self.score,
        )

    async def submit_answer(
        self,
        user_answer: str,
        time_spent_seconds: float = 0,
        *,
        judge: Judge | None = None,
        context: str | None = None,
        timeout: float = DEFAULT_GRADING_TIMEOUT,
    ) -> QuestionResult:
        async with self._lock:
            if self.is_completed:
                raise SessionAlreadyCompleted(self.id)
            question = self.current_question()
            if question is None:
                raise InvalidQuestionIndex(self._current_index, len(self._questions))

            submitted_at = utcnow()
            # cancellation here leaves the session untouched
            outcome = await grade(
                question,
                user_answer or "",
                judge=judge,
                context=context,
                timeout=timeout,
            )
            result = QuestionResult(
                question_id=question.id,
                user_answer=user_answer or "",
                time_spent_seconds=max(0.0, float(time_spent_seconds or 0)),
                submitted_at=submitted_at,
                score=outcome.score,
                is_correct=outcome.is_correct,
                method=outcome.method,
                grading_detail=outcome.detail,
            )
            self._results.append(result)
            self._current_index += 1
            self.total_score = self._sum_scores()
            logger.info(
                "answer_graded session_id=%s question_id=%s kind=%s method=%s score=%.2f correct=%s",
                self.id,
                question.id,
                question.kind.value,
                outcome.method.value,
                outcome.score,
                outcome.is_correct,
            )
            if self.is_completed:
                self._finalize()
            return result

    def complete(self) -> None:
        if not self.is_completed:
            raise SessionNotCompleted(self.id, self._current_index, len(self._questions))
        if self.completed_at is None:
            self._finalize()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "content_id": self.content_id,
            "questions": [q.to_dict() for q in self._questions],
            "results": [r.to_dict() for r in self._results],
            "current_index": self._current_index,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "total_score": self.total_score,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LearningSession":
        return cls(
            [Question.from_dict(q) for q in data.get("questions") or []],
            id=data["id"],
            content_id=data.get("content_id"),
            started_at=parse_dt(data.get("started_at")),
            completed_at=parse_dt(data.get("completed_at")),
            results=[QuestionResult.from_dict(r) for r in data.get("results") or []],
        )
