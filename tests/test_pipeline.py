from linkage.models import (
    INSUFFICIENT_REASON, STATUS_AMBIGUOUS, STATUS_INSUFFICIENT, STATUS_MATCHED, STATUS_NO_MATCH, CandidateRow,
)
from linkage.params import MatchParams
from linkage.pipeline import match_row
from linkage.roster_index import RosterIndex

from conftest import make_student


def _index(*students):
    return RosterIndex(list(students))


SMITH = make_student("S2", "2002", "John", "Smith", "4", "Johnson")
DIAZ = make_student("S1", "1001", "Ana", "Diaz", "3", "Garcia")


def test_scenario_a_id_match():
    res = match_row(CandidateRow(student_id="1001"), _index(DIAZ))
    assert res.matched
    assert res.student_id == "S1"
    assert res.matched_by == "id"
    assert res.band == "exact"
    assert res.confidence >= 90


def test_id_precedence_over_dissimilar_name():
    res = match_row(CandidateRow(student_id="1001", full_name="Zed Zulu"), _index(DIAZ, SMITH))
    assert res.matched_by == "id"
    assert res.student_id == "S1"


def test_id_formula_artifact_and_padding():
    index = _index(DIAZ)
    assert match_row(CandidateRow(student_id='="1001"'), index).student_id == "S1"
    assert match_row(CandidateRow(student_id="0001001"), index).student_id == "S1"


def test_id_grade_mismatch_is_a_warning_only():
    res = match_row(CandidateRow(student_id="1001", grade="5th"), _index(DIAZ))
    assert res.matched
    assert res.signals["grade_match"] is False
    assert res.warnings and "grade mismatch" in res.warnings[0]


def test_state_id_match():
    st = make_student("A", "55", "Ana", "Diaz", state_id="FL000012345678")
    res = match_row(CandidateRow(student_id="FL000012345678"), _index(st))
    assert res.matched and res.matched_by == "id"
    assert "state ID" in res.reason


def test_duplicate_student_number_is_ambiguous():
    a = make_student("A", "77", "Ana", "Diaz")
    b = make_student("B", "77", "Bo", "Li")
    res = match_row(CandidateRow(student_id="77"), _index(b, a))
    assert not res.matched
    assert res.status == STATUS_AMBIGUOUS
    assert [s.id for s in res.alternatives] == ["A", "B"]


def test_scenario_b_name_grade_match():
    res = match_row(CandidateRow(full_name="John Smith", grade="4"), _index(SMITH, DIAZ))
    assert res.matched
    assert res.matched_by == "name-grade"
    assert res.band == "high"


def test_name_grade_disambiguates_namesakes():
    l1 = make_student("L1", "1", "Sam", "Lee", "3")
    l2 = make_student("L2", "2", "Sam", "Lee", "5")
    res = match_row(CandidateRow(first_name="Sam", last_name="Lee", grade="Fifth"), _index(l1, l2))
    assert res.matched and res.student_id == "L2"
    assert res.matched_by == "name-grade"


def test_scenario_c_namesakes_without_grade_are_ambiguous():
    l1 = make_student("L1", "1", "Sam", "Lee", "3")
    l2 = make_student("L2", "2", "Sam", "Lee", "5")
    res = match_row(CandidateRow(full_name="Sam Lee"), _index(l2, l1))
    assert not res.matched
    assert res.status == STATUS_AMBIGUOUS
    assert len(res.alternatives) == 2
    assert [s.id for s in res.alternatives] == ["L1", "L2"]


def test_namesakes_in_row_grade_narrow_the_alternatives():
    same_a = make_student("L1", "1", "Sam", "Lee", "3")
    same_b = make_student("L2", "2", "Sam", "Lee", "3")
    other = make_student("L3", "3", "Sam", "Lee", "5")
    index = _index(same_a, same_b, other)

    res = match_row(CandidateRow(full_name="Sam Lee", grade="3rd"), index)
    assert res.status == STATUS_AMBIGUOUS
    assert [s.id for s in res.alternatives] == ["L1", "L2"]

    # ни одного тёзки в классе строки - показываем всех
    res = match_row(CandidateRow(full_name="Sam Lee", grade="7"), index)
    assert [s.id for s in res.alternatives] == ["L1", "L2", "L3"]


def test_name_only_match_is_medium():
    res = match_row(CandidateRow(full_name="Smith, John"), _index(SMITH, DIAZ))
    assert res.matched
    assert res.matched_by == "name-only"
    assert res.band == "medium"


def test_name_only_with_grade_mismatch_warns():
    res = match_row(CandidateRow(full_name="Smith, John", grade="7"), _index(SMITH))
    assert res.matched_by == "name-only"
    assert res.warnings


def test_scenario_d_fuzzy_unique_top():
    res = match_row(CandidateRow(full_name="Jon Smyth"), _index(SMITH, DIAZ))
    assert res.matched
    assert res.matched_by == "fuzzy"
    assert res.band == "low"
    assert res.signals["name_similarity"] == 78
    assert res.confidence == 78


def test_scenario_d_fuzzy_tie_is_ambiguous():
    joan = make_student("S3", "3003", "Joan", "Smith", "4")
    res = match_row(CandidateRow(full_name="Jon Smyth"), _index(joan, SMITH))
    assert not res.matched
    assert res.status == STATUS_AMBIGUOUS
    assert [s.id for s in res.alternatives] == ["S2", "S3"]


def test_fuzzy_grade_boost_breaks_the_tie():
    joan = make_student("S3", "3003", "Joan", "Smith", "5")
    res = match_row(CandidateRow(full_name="Jon Smyth", grade="4"), _index(joan, SMITH))
    assert res.matched and res.student_id == "S2"
    # 78 + 10 за класс
    assert res.confidence == 88


def test_fuzzy_teacher_boost_and_penalties():
    res = match_row(CandidateRow(full_name="Jon Smyth", grade="4", teacher="Mr. Johnson"), _index(SMITH))
    assert res.confidence == 93
    assert res.signals["teacher_match"] is True

    res = match_row(CandidateRow(full_name="Jon Smyth", grade="6", teacher="Ms. Garcia"), _index(SMITH))
    # 78 - 15 - 5: ниже порога после штрафа, но порог применяется к похожести имени
    assert res.matched
    assert res.confidence == 58


def test_fuzzy_tolerates_first_last_swap():
    res = match_row(CandidateRow(first_name="Smith", last_name="John"), _index(SMITH, DIAZ))
    assert res.matched
    assert res.student_id == "S2"
    assert res.matched_by == "fuzzy"


def test_nothing_above_threshold_is_no_match():
    res = match_row(CandidateRow(full_name="Nobody Here"), _index(SMITH, DIAZ))
    assert not res.matched
    assert res.status == STATUS_NO_MATCH
    assert res.band == "uncertain"


def test_no_match_offers_near_candidates():
    res = match_row(CandidateRow(full_name="Jon Smyth"), _index(SMITH), MatchParams(fuzzy_threshold=90))
    assert not res.matched
    assert res.status == STATUS_NO_MATCH
    assert [s.id for s in res.alternatives] == ["S2"]


def test_insufficient_information():
    res = match_row(CandidateRow(grade="3", teacher="Garcia"), _index(DIAZ))
    assert not res.matched
    assert res.status == STATUS_INSUFFICIENT
    assert res.reason == INSUFFICIENT_REASON


def test_unknown_id_without_name_is_no_match():
    res = match_row(CandidateRow(student_id="9999"), _index(DIAZ))
    assert res.status == STATUS_NO_MATCH


def test_unknown_id_falls_through_to_name():
    res = match_row(CandidateRow(student_id="9999", full_name="Diaz, Ana", grade="3"), _index(DIAZ))
    assert res.matched_by == "name-grade"


def test_empty_roster_is_unmatched():
    res = match_row(CandidateRow(student_id="1001", full_name="Ana Diaz"), _index())
    assert not res.matched


def test_deterministic():
    index = _index(SMITH, DIAZ, make_student("S3", "3003", "Joan", "Smith", "5"))
    row = CandidateRow(full_name="Jon Smyth", grade="4")
    first = match_row(row, index)
    for _ in range(5):
        again = match_row(row, index)
        assert again == first
        assert (again.student_id, again.confidence, again.band) == (first.student_id, first.confidence, first.band)


def test_ties_are_never_matched():
    twins = [make_student(f"T{i}", str(i), "Alex", "Kim", "2") for i in range(3)]
    index = _index(*twins)
    for row in [
        CandidateRow(full_name="Alex Kim"),
        CandidateRow(full_name="Alex Kim", grade="2"),
        CandidateRow(full_name="Alex Kym", grade="2"),
        CandidateRow(full_name="Kim, Alexx", teacher="Lee"),
    ]:
        res = match_row(row, index)
        assert not res.matched
        assert res.status == STATUS_AMBIGUOUS
        assert len(res.alternatives) == 3


def test_matched_result_status():
    res = match_row(CandidateRow(student_id="2002"), _index(SMITH))
    assert res.status == STATUS_MATCHED
