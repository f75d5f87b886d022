import asyncio
import pytest
from recall.errors import SessionNotCompleted
from recall.grader import JudgeVerdict
from recall.questions import Question, QuestionKind
from recall.results import EXCELLENCE_TIP, LOW_ACCURACY_TIPS, QuestionOutcome, letter_grade, summarize
from recall.session import LearningSession


class FixedJudge:
    def __init__(self, percentage):
        self.percentage = percentage

    async def __call__(self, *, prompt, student_answer, reference_content, timeout):
        return JudgeVerdict(self.percentage, "judged")


def _tf(i, correct="True"):
    return Question(id=f"tf{i}", prompt="?", kind=QuestionKind.TRUE_FALSE, correct_answer=correct,
                    explanation="Because.")


def _mc(i):
    return Question(id=f"mc{i}", prompt="?", kind=QuestionKind.MULTIPLE_CHOICE, correct_answer="b",
                    options=("a", "b", "c"))


def _short(i):
    return Question(id=f"sa{i}", prompt="?", kind=QuestionKind.SHORT_ANSWER, correct_answer="ref")


def _play(questions, answers, judge=None, times=None):
    async def _run():
        session = LearningSession.create(questions)
        for i, answer in enumerate(answers):
            t = times[i] if times else 15
            await session.submit_answer(answer, t, judge=judge)
        return session
    return asyncio.run(_run())


@pytest.mark.parametrize(
    "score,grade",
    [(10, "A"), (9.0, "A"), (8.99, "B"), (8.0, "B"), (7.0, "C"), (6.0, "D"), (5.99, "F"), (0, "F")],
)
def test_letter_grade_thresholds(score, grade):
    assert letter_grade(score) == grade


def test_three_true_false_summary():
    session = _play([_tf(1), _tf(2), _tf(3)], ["True", "False", "True"])
    res = summarize(session)
    assert res.total_questions == 3
    assert res.correct_answers == 2
    assert res.incorrect_answers == 1
    assert res.not_answered == 0
    assert res.overall_accuracy == pytest.approx(66.67, abs=0.01)
    assert res.score == pytest.approx(6.67, abs=0.01)
    assert res.grade == "D"
    assert res.recommendations[: len(LOW_ACCURACY_TIPS)] == LOW_ACCURACY_TIPS
    assert "true/false" in res.recommendations[-1]
    assert res.question_results[1].outcome == QuestionOutcome.INCORRECT
    assert "Correct answer: True" in res.question_results[1].feedback
    assert res.question_results[1].feedback.endswith("Because.")


def test_summarize_incomplete_session_fails():
    async def _run():
        session = LearningSession.create([_tf(1), _tf(2)])
        await session.submit_answer("True", 1)
        return session

    session = asyncio.run(_run())
    with pytest.raises(SessionNotCompleted):
        summarize(session)


def test_summarize_is_idempotent():
    session = _play([_tf(1), _mc(2), _short(3)], ["True", "a", "answer"], judge=FixedJudge(50))
    assert summarize(session) == summarize(session)


def test_kind_stats_keep_first_occurrence_order():
    questions = [_short(1), _tf(2), _mc(3), _tf(4)]
    session = _play(questions, ["x", "True", "b", "False"], judge=FixedJudge(90))
    res = summarize(session)
    assert list(res.kind_stats) == [
        QuestionKind.SHORT_ANSWER,
        QuestionKind.TRUE_FALSE,
        QuestionKind.MULTIPLE_CHOICE,
    ]
    tf = res.kind_stats[QuestionKind.TRUE_FALSE]
    assert (tf.total, tf.correct, tf.incorrect) == (2, 1, 1)
    assert tf.accuracy == 50.0


def test_weakest_kind_tip_and_no_low_accuracy_tips():
    questions = [_mc(1), _mc(2), _mc(3), _tf(4)]
    session = _play(questions, ["b", "b", "b", "False"])
    res = summarize(session)
    assert res.overall_accuracy == 75.0
    assert len(res.recommendations) == 1
    assert "true/false" in res.recommendations[0]
    assert res.improvement_areas == ("True/False (0.0%)",)


def test_excellence_tip_comes_last():
    session = _play([_mc(i) for i in range(10)], ["b"] * 10, times=[5] * 10)
    res = summarize(session)
    assert res.grade == "A"
    assert res.recommendations[-1] == EXCELLENCE_TIP
    assert res.recommendations[0] == "Focus on improving your skills with multiple choice questions."
    assert LOW_ACCURACY_TIPS[0] not in res.recommendations
    assert "Perfect - 100% accuracy!" in res.achievements
    assert "Expert - 10+ correct answers" in res.achievements
    assert "Speedy - fastest answer under 10 seconds" in res.achievements


def test_partial_credit_counts_within_incorrect():
    session = _play([_short(1), _short(2)], ["partly", "partly"], judge=FixedJudge(50))
    res = summarize(session)
    assert res.correct_answers == 0
    assert res.incorrect_answers == 2
    assert res.partial_answers == 2
    assert res.score == pytest.approx(5.0)
    assert res.kind_stats[QuestionKind.SHORT_ANSWER].partial == 2


def test_blank_answers_are_not_answered():
    session = _play([_tf(1), _short(2)], ["True", "  "], judge=FixedJudge(100))
    res = summarize(session)
    assert res.not_answered == 1
    assert res.incorrect_answers == 0
    assert res.question_results[1].outcome == QuestionOutcome.NOT_ANSWERED
    assert res.question_results[1].feedback.startswith("Not answered.")
