import pytest

from quizhub.schemas import QuizDefinition
from quizhub.utils.grader import grade, has_passed, percentage_of


def _quiz(*questions, passing=70):
    return QuizDefinition(enabled=True, questions=list(questions), passing_score_percent=passing)


def _mc(text="Capital of France?", correct="Paris", points=1, others=("Lyon", "Nice")):
    options = [{"text": correct, "is_correct": True}] + [{"text": o} for o in others]
    return {"text": text, "kind": "multiple_choice", "options": options, "points": points}


def test_multiple_choice_exact_match_scores_full_points():
    quiz = _quiz(_mc(points=2))
    res = grade(quiz, ["Paris"])
    pct = percentage_of(res.total_score, res.max_score)
    assert (res.total_score, res.max_score, pct) == (2, 2, 100)
    assert has_passed(pct, res.max_score, quiz.passing_score_percent) is True


def test_multiple_choice_is_case_sensitive():
    res = grade(_quiz(_mc()), ["paris"])
    assert res.per_question[0].is_correct is False


def test_multiple_choice_uses_first_correct_option():
    q = {
        "text": "Pick one",
        "kind": "multiple_choice",
        "options": [{"text": "A"}, {"text": "B", "is_correct": True}, {"text": "C", "is_correct": True}],
    }
    assert grade(_quiz(q), ["B"]).per_question[0].is_correct is True
    assert grade(_quiz(q), ["C"]).per_question[0].is_correct is False


def test_multiple_choice_without_correct_option_is_never_correct():
    q = {"text": "Pick one", "kind": "multiple_choice", "options": [{"text": "A"}, {"text": "B"}]}
    assert grade(_quiz(q), ["A"]).total_score == 0


def test_free_text_trims_and_ignores_case():
    q = {"text": "Capital of France?", "kind": "free_text", "correct_answer": "Paris"}
    assert grade(_quiz(q), [" paris "]).per_question[0].is_correct is True


def test_free_text_without_answer_key_is_incorrect():
    q = {"text": "Anything?", "kind": "free_text"}
    assert grade(_quiz(q), ["x"]).per_question[0].is_correct is False


def test_boolean_requires_exact_match():
    q = {"text": "Is water wet?", "kind": "boolean", "correct_answer": "true"}
    assert grade(_quiz(q), ["True"]).per_question[0].is_correct is False
    assert grade(_quiz(q), ["true"]).per_question[0].is_correct is True


def test_boolean_missing_answer_and_key_is_incorrect():
    q = {"text": "Is water wet?", "kind": "boolean"}
    assert grade(_quiz(q), []).per_question[0].is_correct is False


@pytest.mark.parametrize("answers,expected_score,expected_pct", [
    (["Paris", "wrong"], 1, 25),
    (["wrong", "42"], 3, 75),
])
def test_weighted_questions(answers, expected_score, expected_pct):
    quiz = _quiz(_mc(points=1), {"text": "6*7?", "kind": "free_text", "correct_answer": "42", "points": 3})
    res = grade(quiz, answers)
    assert res.total_score == expected_score
    assert res.max_score == 4
    assert percentage_of(res.total_score, res.max_score) == expected_pct


def test_empty_quiz_has_zero_max_and_fails():
    quiz = _quiz()
    res = grade(quiz, ["anything"])
    pct = percentage_of(res.total_score, res.max_score)
    assert (res.total_score, res.max_score, pct) == (0, 0, 0)
    assert res.per_question == []
    assert has_passed(pct, res.max_score, 0) is False


def test_missing_answers_are_graded_incorrect():
    quiz = _quiz(_mc(), {"text": "Q2", "kind": "free_text", "correct_answer": "x"})
    res = grade(quiz, ["Paris"])
    assert [g.is_correct for g in res.per_question] == [True, False]
    assert res.per_question[1].answer_text == ""
    assert res.per_question[1].points_awarded == 0


def test_extra_answers_are_ignored():
    res = grade(_quiz(_mc()), ["Paris", "extra", "more"])
    assert len(res.per_question) == 1
    assert res.total_score == res.max_score == 1


def test_unset_points_count_as_one_and_zero_points_count_as_zero():
    quiz = _quiz(
        {"text": "Q1", "kind": "free_text", "correct_answer": "a", "points": None},
        {"text": "Q2", "kind": "free_text", "correct_answer": "b", "points": 0},
    )
    res = grade(quiz, ["a", "b"])
    assert res.max_score == 1
    assert [g.points_awarded for g in res.per_question] == [1, 0]


def test_question_index_follows_position():
    quiz = _quiz(_mc(text="first"), _mc(text="second"))
    res = grade(quiz, ["Lyon", "Paris"])
    assert [(g.question_index, g.question) for g in res.per_question] == [(0, "first"), (1, "second")]


def test_legacy_kind_spellings_are_accepted():
    quiz = QuizDefinition.model_validate({
        "enabled": True,
        "questions": [
            {"text": "Q1", "kind": "multiple-choice", "options": [{"text": "A", "is_correct": True}]},
            {"text": "Q2", "kind": "text", "correct_answer": "b"},
        ],
    })
    assert grade(quiz, ["A", " B"]).total_score == 2


def test_non_string_answers_do_not_crash():
    quiz = _quiz({"text": "Q", "kind": "boolean", "correct_answer": "true"}, {"text": "T", "kind": "free_text", "correct_answer": "1"})
    res = grade(quiz, [True, 1])
    assert res.total_score == 0
    assert res.per_question[0].answer_text == "True"


def test_scores_stay_within_bounds():
    quizzes = [
        _quiz(_mc(points=5), {"text": "T", "kind": "free_text", "correct_answer": "x", "points": 2.5}),
        _quiz({"text": "B", "kind": "boolean", "correct_answer": "false", "points": 0}),
    ]
    for quiz in quizzes:
        for answers in ([], ["Paris", "x"], ["false"], ["nope", "nope", "nope"]):
            res = grade(quiz, answers)
            pct = percentage_of(res.total_score, res.max_score)
            assert 0 <= res.total_score <= res.max_score
            assert 0 <= pct <= 100


def test_percentage_rounds_half_up():
    assert percentage_of(1, 8) == 13
    assert percentage_of(1, 3) == 33
    assert percentage_of(2, 3) == 67


def test_infinite_points_are_rejected():
    from pydantic import ValidationError
    with pytest.raises(ValidationError):
        QuizDefinition(questions=[{"text": "Q", "kind": "boolean", "correct_answer": "true", "points": float("inf")}])


def test_points_summing_past_float_range_are_rejected():
    from pydantic import ValidationError
    big = {"text": "Q", "kind": "boolean", "correct_answer": "true", "points": 1e308}
    with pytest.raises(ValidationError):
        QuizDefinition(questions=[big, big])


def test_passing_score_defaults_to_configured_value(monkeypatch):
    from quizhub.config import settings
    monkeypatch.setattr(settings, "DEFAULT_PASSING_SCORE", 55)
    assert QuizDefinition().passing_score_percent == 55
    assert QuizDefinition(passing_score_percent=90).passing_score_percent == 90
