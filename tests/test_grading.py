"""Unit tests for answer grading."""

from seasonquiz.services.grading import grade_answer


def test_exact_match_is_correct():
    assert grade_answer("Paris", "Paris") is True


def test_case_and_whitespace_variants_are_wrong():
    assert grade_answer("paris", "Paris") is False
    assert grade_answer(" Paris", "Paris") is False
    assert grade_answer("  the   BEATLES ", "The Beatles") is False


def test_different_option_is_wrong():
    assert grade_answer("Lyon", "Paris") is False


def test_empty_answer_is_wrong():
    assert grade_answer("", "Paris") is False
    assert grade_answer(None, "Paris") is False


def test_missing_correct_answer_is_wrong():
    assert grade_answer("Paris", None) is False
