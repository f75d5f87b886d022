from __future__ import annotations


class RecallError(Exception):
    """Base class for session engine failures surfaced to callers."""


class EmptyQuestionSet(RecallError):
    def __init__(self, content_id: str | None = None):
        self.content_id = content_id
        suffix = f" for content {content_id}" if content_id else ""
        super().__init__(f"cannot start a session without questions{suffix}")


class SessionAlreadyCompleted(RecallError):
    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"session {session_id} is already completed")


class SessionNotCompleted(RecallError):
    def __init__(self, session_id: str, answered: int, total: int):
        self.session_id = session_id
        self.answered = answered
        self.total = total
        super().__init__(
            f"session {session_id} is not completed ({answered}/{total} answered)"
        )


class SessionNotFound(RecallError):
    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"session {session_id} not found")


class GradingUnavailable(RecallError):
    """The AI judge could not produce a verdict; never reaches end callers."""


class InvalidQuestionIndex(RecallError):
    def __init__(self, index: int, total: int):
        self.index = index
        self.total = total
        super().__init__(f"question index {index} out of range for {total} questions")
