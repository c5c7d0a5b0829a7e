import pytest

from linkage.grades import grades_equal, normalize_grade


@pytest.mark.parametrize("raw", ["K", "k", "Kindergarten", "KG", "00", "Grade K"])
def test_kindergarten_spellings(raw):
    assert normalize_grade(raw) == "K"


@pytest.mark.parametrize("raw", ["Pre-K", "PK", "PK4", "Pre", "Prekindergarten"])
def test_pre_k_spellings(raw):
    assert normalize_grade(raw) == "Pre"


@pytest.mark.parametrize("raw", ["3", "03", "3rd", "Third", '="03"', "Grade 3", "3rd Grade"])
def test_third_grade_spellings(raw):
    assert normalize_grade(raw) == "3"


def test_upper_grades():
    assert normalize_grade("12th") == "12"
    assert normalize_grade("Tenth") == "10"


def test_unrecognized_is_kept_as_literal():
    assert normalize_grade("Ungraded") == "ungraded"
    assert normalize_grade("13") == "13"
    assert normalize_grade("") == ""
    assert normalize_grade(None) == ""


def test_normalization_is_idempotent():
    for raw in ["K", "Pre-K", "3rd", "03", "Twelfth", "Ungraded", "13", "gx", ""]:
        once = normalize_grade(raw)
        assert normalize_grade(once) == once


def test_grades_equal_needs_both_sides():
    assert grades_equal("3rd", "03") is True
    assert grades_equal("3", "4") is False
    assert grades_equal("", "4") is None
