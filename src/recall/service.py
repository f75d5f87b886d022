from __future__ import annotations
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Iterable, Protocol

from .config import Settings
from .db import ensure_schema, make_engine, make_sessionmaker
from .errors import EmptyQuestionSet, SessionNotFound
from .grader import DEFAULT_GRADING_TIMEOUT, Judge
from .questions import Question
from .results import DetailedResults, summarize
from .session import LearningSession, QuestionResult
from .store import ContentStats, QuestionStore, SessionStore

logger = logging.getLogger(__name__)


class QuestionSource(Protocol):
    async def load_questions(self, content_id: str) -> list[Question]: ...


class SessionService:
    """Caller-facing surface: every operation addresses a session by id.

    Each call loads the session from the store, applies one operation and
    saves it back while holding that session's lock, so concurrent requests
    for the same session are serialized.
    """

    def __init__(
        self,
        store: SessionStore,
        *,
        questions: QuestionSource | None = None,
        judge: Judge | None = None,
        grading_timeout: float = DEFAULT_GRADING_TIMEOUT,
    ):
        self.store = store
        self.questions = questions
        self.judge = judge
        self.grading_timeout = grading_timeout
        # entries live only while some call holds or waits on the lock
        self._locks: dict[str, asyncio.Lock] = {}
        self._waiters: dict[str, int] = {}

    @asynccontextmanager
    async def _session_lock(self, session_id: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(session_id, asyncio.Lock())
        self._waiters[session_id] = self._waiters.get(session_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            remaining = self._waiters[session_id] - 1
            if remaining:
                self._waiters[session_id] = remaining
            else:
                del self._waiters[session_id]
                del self._locks[session_id]

    async def _load(self, session_id: str) -> LearningSession:
        session = await self.store.load(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        return session

    async def start_session(
        self,
        questions: Iterable[Question] | None = None,
        *,
        content_id: str | None = None,
    ) -> str:
        if questions is None:
            if content_id is None or self.questions is None:
                raise EmptyQuestionSet(content_id)
            questions = await self.questions.load_questions(content_id)
        session = LearningSession.create(questions, content_id=content_id)
        await self.store.save(session)
        return session.id

    async def submit_answer(
        self,
        session_id: str,
        answer: str,
        time_spent_seconds: float = 0,
        *,
        context: str | None = None,
    ) -> QuestionResult:
        async with self._session_lock(session_id):
            session = await self._load(session_id)
            result = await session.submit_answer(
                answer,
                time_spent_seconds,
                judge=self.judge,
                context=context,
                timeout=self.grading_timeout,
            )
            await self.store.save(session)
            return result

    async def get_current_question(self, session_id: str) -> Question | None:
        session = await self._load(session_id)
        return session.current_question()

    async def complete_session(self, session_id: str) -> DetailedResults:
        async with self._session_lock(session_id):
            session = await self._load(session_id)
            session.complete()
            await self.store.save(session)
            return summarize(session)

    async def get_summary(self, session_id: str) -> DetailedResults:
        session = await self._load(session_id)
        return summarize(session)

    async def resume_session(self, content_id: str) -> str | None:
        """Id of the unfinished session for ``content_id``, if there is one."""
        session = await self.store.active_for_content(content_id)
        if session is None:
            return None
        logger.info(
            "session_resumed session_id=%s content_id=%s answered=%s/%s",
            session.id,
            content_id,
            session.current_index,
            len(session.questions),
        )
        return session.id

    async def content_stats(self, content_id: str) -> ContentStats:
        return await self.store.content_stats(content_id)


async def build_service(settings: Settings) -> SessionService:
    engine = make_engine(settings.database_url)
    await ensure_schema(engine)
    sessionmaker = make_sessionmaker(engine)

    judge = None
    if settings.gemini_api_key:
        from .llm import GeminiJudge

        judge = GeminiJudge(
            api_key=settings.gemini_api_key,
            model=settings.llm_model,
            feedback_lang=settings.feedback_lang,
        )
    else:
        logger.warning("ai_grading_disabled reason=no_api_key")

    return SessionService(
        SessionStore(sessionmaker),
        questions=QuestionStore(sessionmaker),
        judge=judge,
        grading_timeout=settings.grading_timeout,
    )
