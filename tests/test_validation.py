from recall.questions import QuestionKind
from recall.validation import parse_questions, validate_questions


def _good():
    return [
        {"id": "q1", "prompt": "Pick water", "kind": "multiple_choice", "correct_answer": "H2O",
         "options": ["CO2", "H2O"]},
        {"id": "q2", "prompt": "Sun is a star", "kind": "true_false", "correct_answer": "True"},
        {"id": "q3", "prompt": "Match", "kind": "match_concepts", "correct_answer": "H2O:water|NaCl:salt"},
        {"id": "q4", "prompt": "Explain", "kind": "short_answer", "correct_answer": "Because"},
    ]


def _messages(issues):
    return [(i.severity, i.message, i.question_id) for i in issues]


def test_valid_payload_has_no_issues():
    assert validate_questions(_good()) == []
    assert validate_questions({"content_id": "c", "questions": _good()}) == []


def test_missing_fields_and_duplicates():
    payload = _good() + [
        {"id": "q1", "prompt": "Again", "kind": "flashcard", "correct_answer": "x"},
        {"id": "q5", "kind": "flashcard"},
        "not an object",
    ]
    msgs = _messages(validate_questions(payload))
    assert ("error", "duplicate id", "q1") in msgs
    assert ("error", "missing prompt", "q5") in msgs
    assert ("error", "missing correct_answer", "q5") in msgs
    assert ("error", "question is not an object", None) in msgs


def test_unknown_kind():
    issues = validate_questions([{"id": "x", "prompt": "p", "kind": "essay", "correct_answer": "a"}])
    assert len(issues) == 1
    assert "unknown kind" in issues[0].message
    assert issues[0].item_index == 1


def test_choice_questions_need_options_containing_answer():
    payload = [
        {"id": "a", "prompt": "p", "kind": "multiple_choice", "correct_answer": "x", "options": ["x"]},
        {"id": "b", "prompt": "p", "kind": "missing_word_choice", "correct_answer": "z", "options": ["x", "y"]},
        {"id": "c", "prompt": "p", "kind": "content_multiple_choice", "correct_answer": "B", "options": ["x", "y"]},
        {"id": "d", "prompt": "p", "kind": "multiple_choice", "correct_answer": "x", "options": "x,y"},
    ]
    msgs = _messages(validate_questions(payload))
    assert ("error", "multiple_choice requires at least 2 options", "a") in msgs
    assert ("error", "correct_answer not in options", "b") in msgs
    assert ("error", "options must be a list", "d") in msgs
    assert not [m for m in msgs if m[2] == "c"]


def test_options_on_open_kind_is_warning():
    payload = [{"id": "a", "prompt": "p", "kind": "fill_blank", "correct_answer": "x", "options": ["x", "y"]}]
    issues = validate_questions(payload)
    assert [(i.severity, i.message) for i in issues] == [("warning", "options ignored for fill_blank")]


def test_true_false_and_match_concept_answers():
    payload = [
        {"id": "a", "prompt": "p", "kind": "true_false", "correct_answer": "maybe"},
        {"id": "b", "prompt": "p", "kind": "match_concepts", "correct_answer": "a:b|c"},
    ]
    msgs = [m[2] for m in _messages(validate_questions(payload))]
    assert msgs == ["a", "b"]


def test_parse_questions_builds_models():
    questions = parse_questions({"questions": _good()})
    assert [q.kind for q in questions] == [
        QuestionKind.MULTIPLE_CHOICE,
        QuestionKind.TRUE_FALSE,
        QuestionKind.MATCH_CONCEPTS,
        QuestionKind.SHORT_ANSWER,
    ]
    assert questions[0].options == ("CO2", "H2O")
