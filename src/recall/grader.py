from __future__ import annotations
import asyncio
from dataclasses import dataclass
from enum import Enum
import logging
import math
from typing import Any, Protocol

from .choices import resolve_choice
from .errors import GradingUnavailable
from .normalize import is_blank, norm_bool_token, norm_cmp_text, split_pairs
from .questions import AI_PASS_PERCENTAGE, CHOICE_KINDS, MAX_SCORE, Question, QuestionKind

logger = logging.getLogger(__name__)

DEFAULT_GRADING_TIMEOUT = 30.0


class GradingMethod(str, Enum):
    AUTOMATIC = "automatic"
    AI = "ai"
    FALLBACK = "fallback"        # AI judge failed, exact match used instead
    NOT_ANSWERED = "not_answered"


@dataclass(frozen=True)
class JudgeVerdict:
    percentage: float
    rationale: str = ""
    suggestions: str = ""


@dataclass(frozen=True)
class GradingDetail:
    percentage: float
    rationale: str = ""
    suggestions: str = ""
    degraded: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "percentage": self.percentage,
            "rationale": self.rationale,
            "suggestions": self.suggestions,
            "degraded": self.degraded,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GradingDetail":
        return cls(
            percentage=float(data.get("percentage") or 0.0),
            rationale=data.get("rationale") or "",
            suggestions=data.get("suggestions") or "",
            degraded=bool(data.get("degraded")),
        )


@dataclass(frozen=True)
class GradingOutcome:
    score: float
    is_correct: bool
    method: GradingMethod
    detail: GradingDetail | None = None


class Judge(Protocol):
    async def __call__(
        self,
        *,
        prompt: str,
        student_answer: str,
        reference_content: str,
        timeout: float,
    ) -> JudgeVerdict: ...


def _binary(ok: bool) -> GradingOutcome:
    return GradingOutcome(float(MAX_SCORE) if ok else 0.0, ok, GradingMethod.AUTOMATIC)

def _match_choice(question: Question, user: str) -> bool:
    options = list(question.options)
    picked = resolve_choice(user, options) or user
    # answer keys are sometimes stored as a letter or index instead of option text
    expected = resolve_choice(question.correct_answer, options) or question.correct_answer
    return bool(norm_cmp_text(picked)) and norm_cmp_text(picked) == norm_cmp_text(expected)

def _match_true_false(question: Question, user: str) -> bool:
    user_val = norm_bool_token(user)
    expected = norm_bool_token(question.correct_answer)
    return user_val is not None and user_val == expected

def _match_concepts(question: Question, user: str) -> bool:
    submitted = split_pairs(user)
    key = split_pairs(question.correct_answer)
    return bool(submitted) and submitted == key

def _match_exact(question: Question, user: str) -> bool:
    return norm_cmp_text(user) == norm_cmp_text(question.correct_answer)

def grade_deterministic(question: Question, user_answer: str) -> GradingOutcome:
    if is_blank(user_answer):
        return GradingOutcome(0.0, False, GradingMethod.NOT_ANSWERED)
    kind = question.kind
    if kind in CHOICE_KINDS:
        return _binary(_match_choice(question, user_answer))
    if kind == QuestionKind.TRUE_FALSE:
        return _binary(_match_true_false(question, user_answer))
    if kind == QuestionKind.MATCH_CONCEPTS:
        return _binary(_match_concepts(question, user_answer))
    return _binary(_match_exact(question, user_answer))

def _fallback(question: Question, user_answer: str, reason: str) -> GradingOutcome:
    logger.warning(
        "ai_grading_degraded question_id=%s kind=%s reason=%s",
        question.id,
        question.kind.value,
        reason,
    )
    ok = _match_exact(question, user_answer)
    return GradingOutcome(
        float(MAX_SCORE) if ok else 0.0,
        ok,
        GradingMethod.FALLBACK,
        GradingDetail(
            percentage=100.0 if ok else 0.0,
            rationale="AI grading unavailable; graded by exact match.",
            degraded=True,
        ),
    )

def _outcome_from_verdict(verdict: JudgeVerdict) -> GradingOutcome:
    try:
        pct = float(verdict.percentage)
    except (TypeError, ValueError):
        raise GradingUnavailable(f"non-numeric percentage {verdict.percentage!r}")
    if math.isnan(pct):
        raise GradingUnavailable("percentage is NaN")
    pct = min(100.0, max(0.0, pct))
    return GradingOutcome(
        score=pct / 100.0 * MAX_SCORE,
        is_correct=pct >= AI_PASS_PERCENTAGE,
        method=GradingMethod.AI,
        detail=GradingDetail(
            percentage=pct,
            rationale=verdict.rationale or "",
            suggestions=verdict.suggestions or "",
        ),
    )

def build_reference(question: Question, context: str | None = None) -> str:
    parts = [f"Reference answer: {question.correct_answer}"]
    if question.explanation:
        parts.append(f"Explanation: {question.explanation}")
    if context:
        parts.append(f"Source content: {context}")
    return "\n".join(parts)

async def grade(
    question: Question,
    user_answer: str,
    *,
    judge: Judge | None = None,
    context: str | None = None,
    timeout: float = DEFAULT_GRADING_TIMEOUT,
) -> GradingOutcome:
    if is_blank(user_answer):
        return GradingOutcome(0.0, False, GradingMethod.NOT_ANSWERED)
    if not question.requires_ai_grading:
        return grade_deterministic(question, user_answer)
    if judge is None:
        return _fallback(question, user_answer, "no_judge")

    try:
        verdict = await asyncio.wait_for(
            judge(
                prompt=question.prompt,
                student_answer=user_answer.strip(),
                reference_content=build_reference(question, context),
                timeout=timeout,
            ),
            timeout=timeout,
        )
        return _outcome_from_verdict(verdict)
    except asyncio.TimeoutError:
        return _fallback(question, user_answer, "timeout")
    except GradingUnavailable as e:
        return _fallback(question, user_answer, str(e) or "unavailable")
    except Exception as e:
        logger.exception("ai_grading_failed question_id=%s", question.id)
        return _fallback(question, user_answer, type(e).__name__)
