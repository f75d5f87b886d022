from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

MAX_SCORE = 10
# AI verdicts at or above this percentage count as correct
AI_PASS_PERCENTAGE = 70.0


class QuestionKind(str, Enum):
    MULTIPLE_CHOICE = "multiple_choice"
    FILL_BLANK = "fill_blank"
    EXACT_TYPING = "exact_typing"
    TRUE_FALSE = "true_false"
    MATCH_CONCEPTS = "match_concepts"
    SHORT_ANSWER = "short_answer"
    SCENARIO = "scenario"
    FLASHCARD = "flashcard"
    MISSING_WORD_CHOICE = "missing_word_choice"
    CONTENT_MULTIPLE_CHOICE = "content_multiple_choice"


class GradingStrategy(str, Enum):
    DETERMINISTIC = "deterministic"
    AI_JUDGED = "ai_judged"


class ContentMode(str, Enum):
    MEMORIZATION = "memorization"
    UNDERSTANDING = "understanding"


@dataclass(frozen=True)
class KindInfo:
    display_name: str
    mode: ContentMode
    strategy: GradingStrategy


KIND_INFO: dict[QuestionKind, KindInfo] = {
    QuestionKind.FILL_BLANK: KindInfo("Fill in the Blank", ContentMode.MEMORIZATION, GradingStrategy.AI_JUDGED),
    QuestionKind.MISSING_WORD_CHOICE: KindInfo("Missing Word Choice", ContentMode.MEMORIZATION, GradingStrategy.DETERMINISTIC),
    QuestionKind.FLASHCARD: KindInfo("Flashcard", ContentMode.MEMORIZATION, GradingStrategy.DETERMINISTIC),
    QuestionKind.EXACT_TYPING: KindInfo("Exact Typing", ContentMode.MEMORIZATION, GradingStrategy.AI_JUDGED),
    QuestionKind.CONTENT_MULTIPLE_CHOICE: KindInfo("Content Multiple Choice", ContentMode.MEMORIZATION, GradingStrategy.DETERMINISTIC),
    QuestionKind.MULTIPLE_CHOICE: KindInfo("Multiple Choice", ContentMode.UNDERSTANDING, GradingStrategy.DETERMINISTIC),
    QuestionKind.TRUE_FALSE: KindInfo("True/False", ContentMode.UNDERSTANDING, GradingStrategy.DETERMINISTIC),
    QuestionKind.MATCH_CONCEPTS: KindInfo("Match Concepts", ContentMode.UNDERSTANDING, GradingStrategy.DETERMINISTIC),
    QuestionKind.SHORT_ANSWER: KindInfo("Short Answer", ContentMode.UNDERSTANDING, GradingStrategy.AI_JUDGED),
    QuestionKind.SCENARIO: KindInfo("Scenario Question", ContentMode.UNDERSTANDING, GradingStrategy.AI_JUDGED),
}

CHOICE_KINDS = frozenset({
    QuestionKind.MULTIPLE_CHOICE,
    QuestionKind.MISSING_WORD_CHOICE,
    QuestionKind.CONTENT_MULTIPLE_CHOICE,
})


def kinds_for_mode(mode: ContentMode) -> list[QuestionKind]:
    return [kind for kind, info in KIND_INFO.items() if info.mode == mode]


@dataclass(frozen=True)
class Question:
    id: str
    prompt: str
    kind: QuestionKind
    correct_answer: str
    explanation: str = ""
    options: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self):
        # accept plain strings/lists from storage and JSON payloads
        if not isinstance(self.kind, QuestionKind):
            object.__setattr__(self, "kind", QuestionKind(self.kind))
        if not isinstance(self.options, tuple):
            object.__setattr__(self, "options", tuple(str(x) for x in (self.options or [])))

    @property
    def grading_strategy(self) -> GradingStrategy:
        return KIND_INFO[self.kind].strategy

    @property
    def requires_ai_grading(self) -> bool:
        return self.grading_strategy == GradingStrategy.AI_JUDGED

    @property
    def max_score(self) -> int:
        return MAX_SCORE

    @property
    def display_name(self) -> str:
        return KIND_INFO[self.kind].display_name

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "prompt": self.prompt,
            "kind": self.kind.value,
            "correct_answer": self.correct_answer,
            "explanation": self.explanation,
            "options": list(self.options),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Question":
        return cls(
            id=str(data["id"]),
            prompt=data["prompt"],
            kind=QuestionKind(data["kind"]),
            correct_answer=data.get("correct_answer") or "",
            explanation=data.get("explanation") or "",
            options=tuple(str(x) for x in (data.get("options") or [])),
        )
