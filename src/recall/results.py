from __future__ import annotations
from dataclasses import dataclass
from enum import Enum

from .errors import SessionNotCompleted
from .grader import GradingMethod
from .questions import MAX_SCORE, KIND_INFO, Question, QuestionKind
from .session import LearningSession, QuestionResult

LOW_ACCURACY_TIPS = (
    "Spend more time reviewing the content before answering the questions.",
    "Read each question carefully and think it through before answering.",
)
EXCELLENCE_TIP = "Excellent! Challenge yourself with harder content."

GRADE_THRESHOLDS = (
    (90.0, "A"),
    (80.0, "B"),
    (70.0, "C"),
    (60.0, "D"),
)


class QuestionOutcome(str, Enum):
    CORRECT = "correct"
    INCORRECT = "incorrect"
    NOT_ANSWERED = "not_answered"


@dataclass(frozen=True)
class KindStats:
    kind: QuestionKind
    total: int = 0
    correct: int = 0
    incorrect: int = 0
    partial: int = 0
    accuracy: float = 0.0


@dataclass(frozen=True)
class QuestionSummary:
    index: int
    question_id: str
    kind: QuestionKind
    outcome: QuestionOutcome
    score: float
    feedback: str
    degraded: bool = False


@dataclass(frozen=True)
class DetailedResults:
    session_id: str
    total_questions: int
    correct_answers: int
    incorrect_answers: int
    partial_answers: int
    not_answered: int
    overall_accuracy: float
    score: float
    grade: str
    total_time_seconds: float
    kind_stats: dict[QuestionKind, KindStats]
    question_results: tuple[QuestionSummary, ...]
    recommendations: tuple[str, ...]
    improvement_areas: tuple[str, ...]
    achievements: tuple[str, ...]


def letter_grade(score: float) -> str:
    """Map an average 0-10 score to a letter on the 100-point scale."""
    pct = score * 100.0 / MAX_SCORE
    for threshold, letter in GRADE_THRESHOLDS:
        if pct >= threshold:
            return letter
    return "F"

def classify(result: QuestionResult | None) -> QuestionOutcome:
    if result is None or result.method == GradingMethod.NOT_ANSWERED:
        return QuestionOutcome.NOT_ANSWERED
    if result.is_correct:
        return QuestionOutcome.CORRECT
    return QuestionOutcome.INCORRECT

def _is_partial(result: QuestionResult | None) -> bool:
    return (
        classify(result) == QuestionOutcome.INCORRECT
        and result is not None
        and (result.score or 0.0) > 0.0
    )

def _feedback(question: Question, result: QuestionResult | None, outcome: QuestionOutcome) -> str:
    if outcome == QuestionOutcome.NOT_ANSWERED:
        text = "Not answered."
    elif outcome == QuestionOutcome.CORRECT:
        text = "Correct!"
    else:
        text = f"Not quite. Correct answer: {question.correct_answer}."
    if result is not None and result.grading_detail and result.grading_detail.rationale:
        text = f"{text} {result.grading_detail.rationale}"
    if question.explanation:
        text = f"{text} {question.explanation}"
    return text

def _kind_stats(questions: tuple[Question, ...], results: tuple[QuestionResult, ...]) -> dict[QuestionKind, KindStats]:
    counts: dict[QuestionKind, dict[str, int]] = {}
    for i, question in enumerate(questions):
        result = results[i] if i < len(results) else None
        c = counts.setdefault(question.kind, {"total": 0, "correct": 0, "incorrect": 0, "partial": 0})
        c["total"] += 1
        outcome = classify(result)
        if outcome == QuestionOutcome.CORRECT:
            c["correct"] += 1
        elif outcome == QuestionOutcome.INCORRECT:
            c["incorrect"] += 1
            if _is_partial(result):
                c["partial"] += 1
    return {
        kind: KindStats(
            kind=kind,
            total=c["total"],
            correct=c["correct"],
            incorrect=c["incorrect"],
            partial=c["partial"],
            accuracy=c["correct"] / c["total"] * 100.0 if c["total"] else 0.0,
        )
        for kind, c in counts.items()
    }

def _weakest_kind(kind_stats: dict[QuestionKind, KindStats]) -> KindStats | None:
    attempted = [s for s in kind_stats.values() if s.total > 0]
    if not attempted:
        return None
    # min() keeps the first occurrence on ties
    return min(attempted, key=lambda s: s.accuracy)

def build_recommendations(overall_accuracy: float, kind_stats: dict[QuestionKind, KindStats]) -> list[str]:
    recs: list[str] = []
    if overall_accuracy < 70.0:
        recs.extend(LOW_ACCURACY_TIPS)
    weakest = _weakest_kind(kind_stats)
    # fires even at 100% accuracy; callers render only the first few tips
    if weakest is not None:
        name = KIND_INFO[weakest.kind].display_name.lower()
        recs.append(f"Focus on improving your skills with {name} questions.")
    if overall_accuracy >= 90.0:
        recs.append(EXCELLENCE_TIP)
    return recs

def improvement_areas(kind_stats: dict[QuestionKind, KindStats]) -> list[str]:
    weak = [s for s in kind_stats.values() if s.total > 0 and s.accuracy < 80.0]
    weak.sort(key=lambda s: s.accuracy)
    return [f"{KIND_INFO[s.kind].display_name} ({s.accuracy:.1f}%)" for s in weak]

def achievements(overall_accuracy: float, correct: int, results: tuple[QuestionResult, ...]) -> list[str]:
    out: list[str] = []
    if overall_accuracy >= 100.0:
        out.append("Perfect - 100% accuracy!")
    elif overall_accuracy >= 90.0:
        out.append("Excellent - over 90%!")
    elif overall_accuracy >= 80.0:
        out.append("Good - over 80%!")
    if correct >= 10:
        out.append("Expert - 10+ correct answers")
    times = [r.time_spent_seconds for r in results]
    fastest = min(times) if times else 0.0
    if 0 < fastest < 10:
        out.append("Speedy - fastest answer under 10 seconds")
    return out

def summarize(session: LearningSession) -> DetailedResults:
    if not session.is_completed:
        raise SessionNotCompleted(session.id, session.current_index, len(session.questions))

    questions = session.questions
    results = session.results
    total = len(questions)

    rows: list[QuestionSummary] = []
    for i, question in enumerate(questions):
        result = results[i] if i < len(results) else None
        outcome = classify(result)
        rows.append(
            QuestionSummary(
                index=i,
                question_id=question.id,
                kind=question.kind,
                outcome=outcome,
                score=(result.score or 0.0) if result is not None else 0.0,
                feedback=_feedback(question, result, outcome),
                degraded=bool(result and result.degraded),
            )
        )

    correct = sum(1 for r in rows if r.outcome == QuestionOutcome.CORRECT)
    incorrect = sum(1 for r in rows if r.outcome == QuestionOutcome.INCORRECT)
    not_answered = sum(1 for r in rows if r.outcome == QuestionOutcome.NOT_ANSWERED)
    partial = sum(1 for i in range(len(results)) if _is_partial(results[i]))

    accuracy = correct / total * 100.0
    score = sum(r.score for r in rows) / total
    stats = _kind_stats(questions, results)

    return DetailedResults(
        session_id=session.id,
        total_questions=total,
        correct_answers=correct,
        incorrect_answers=incorrect,
        partial_answers=partial,
        not_answered=not_answered,
        overall_accuracy=accuracy,
        score=score,
        grade=letter_grade(score),
        total_time_seconds=session.total_time_seconds,
        kind_stats=stats,
        question_results=tuple(rows),
        recommendations=tuple(build_recommendations(accuracy, stats)),
        improvement_areas=tuple(improvement_areas(stats)),
        achievements=tuple(achievements(accuracy, correct, results)),
    )
