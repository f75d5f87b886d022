from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from .choices import resolve_choice
from .normalize import norm_bool_token, norm_text, split_pairs
from .questions import CHOICE_KINDS, Question, QuestionKind


@dataclass(frozen=True)
class ValidationIssue:
    severity: str  # "error" | "warning"
    message: str
    question_id: str | None = None
    item_index: int | None = None


def iter_question_payloads(payload) -> Iterable[dict]:
    if isinstance(payload, dict):
        questions = payload.get("questions")
        if isinstance(questions, list):
            return questions
    if isinstance(payload, list):
        return payload
    return []


def validate_questions(payload) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    seen_ids: set[str] = set()
    for idx, item in enumerate(iter_question_payloads(payload), start=1):
        if not isinstance(item, dict):
            issues.append(ValidationIssue("error", "question is not an object", None, idx))
            continue
        qid = str(item.get("id") or "").strip() or None
        for key in ("id", "prompt", "kind", "correct_answer"):
            if not norm_text(str(item.get(key) or "")):
                issues.append(ValidationIssue("error", f"missing {key}", qid, idx))
        if qid:
            if qid in seen_ids:
                issues.append(ValidationIssue("error", "duplicate id", qid, idx))
            seen_ids.add(qid)

        try:
            kind = QuestionKind(item.get("kind"))
        except ValueError:
            if item.get("kind"):
                issues.append(ValidationIssue("error", f"unknown kind {item.get('kind')!r}", qid, idx))
            continue

        options = item.get("options") or []
        if not isinstance(options, list):
            issues.append(ValidationIssue("error", "options must be a list", qid, idx))
            continue
        options = [str(x) for x in options]
        correct = str(item.get("correct_answer") or "")

        if kind in CHOICE_KINDS:
            if len(options) < 2:
                issues.append(ValidationIssue("error", f"{kind.value} requires at least 2 options", qid, idx))
            elif correct and resolve_choice(correct, options) is None:
                issues.append(ValidationIssue("error", "correct_answer not in options", qid, idx))
        elif options:
            issues.append(ValidationIssue("warning", f"options ignored for {kind.value}", qid, idx))

        if kind == QuestionKind.TRUE_FALSE and correct and norm_bool_token(correct) is None:
            issues.append(ValidationIssue("error", "true_false correct_answer must be True or False", qid, idx))
        if kind == QuestionKind.MATCH_CONCEPTS and correct and not split_pairs(correct):
            issues.append(
                ValidationIssue("error", "match_concepts correct_answer must be left:right pairs joined by |", qid, idx)
            )
    return issues


def parse_questions(payload) -> list[Question]:
    return [Question.from_dict(item) for item in iter_question_payloads(payload)]
