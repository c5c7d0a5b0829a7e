import pytest

from linkage.batch import match_dataset
from linkage.models import CandidateRow, StaleDatasetError
from linkage.store import RosterStore

from conftest import make_student


def test_empty_store(tmp_path):
    store = RosterStore(tmp_path / "store.json")
    assert store.load_roster() == []
    assert store.roster_version == 0
    assert store.reports() == []


def test_replace_roster_round_trip(tmp_path, roster):
    store = RosterStore(tmp_path / "store.json")
    assert store.replace_roster(roster) == 1
    assert store.load_roster() == roster


def test_only_matched_rows_are_saved_but_report_always_is(tmp_path, roster, rows):
    store = RosterStore(tmp_path / "store.json")
    version = store.replace_roster(roster)
    pairs, report = match_dataset(rows, store.load_roster())

    saved = store.save_match("iready", pairs, report, version)
    assert saved == 2
    stored = store.load_dataset("iready")
    assert {r["student_id"] for r in stored} == {"S1", "S2"}

    nothing = [(CandidateRow(full_name="Nobody Here"), pairs[3][1])]
    _, empty_report = match_dataset([CandidateRow(full_name="Nobody Here")], roster)
    assert store.save_match("fast", nothing, empty_report, version) == 0
    assert [r["dataset"] for r in store.reports()] == ["iready", "fast"]
    assert store.reports()[1]["report"]["matchRate"] == 0


def test_scenario_e_roster_swap_invalidates_matched_data(tmp_path, roster, rows):
    store = RosterStore(tmp_path / "store.json")
    version, students = store.replace_roster(roster), store.load_roster()
    pairs, report = match_dataset(rows, students)
    store.save_match("iready", pairs, report, version)

    store.replace_roster([make_student("N1", "1001", "Ana", "Diaz", "4")])
    assert store.roster_version == 2
    with pytest.raises(StaleDatasetError):
        store.load_dataset("iready")
    assert store.dataset_names() == []
    assert store.dataset_names(current_only=False) == ["iready"]
    # история отчётов остаётся для аудита
    assert len(store.reports()) == 1

    version, students = store.roster_snapshot()
    pairs, report = match_dataset(rows, students)
    store.save_match("iready", pairs, report, version)
    assert [r["student_id"] for r in store.load_dataset("iready")] == ["N1"]


def test_unknown_dataset(tmp_path):
    with pytest.raises(KeyError):
        RosterStore(tmp_path / "store.json").load_dataset("nope")


def test_enrollment_stats(tmp_path, roster):
    store = RosterStore(tmp_path / "store.json")
    store.replace_roster(roster + [make_student("X", "9", "Al", "Bo", "")])
    stats = store.enrollment_stats()
    assert stats["total_students"] == 5
    assert stats["grade_distribution"] == {"3": 2, "4": 1, "5": 1, "Unknown": 1}


def test_matches_from_replaced_roster_are_not_saved(tmp_path, roster, rows):
    store = RosterStore(tmp_path / "store.json")
    store.replace_roster(roster)
    version, students = store.roster_snapshot()
    pairs, report = match_dataset(rows, students)

    # ростер заменили между запуском и сохранением
    store.replace_roster([make_student("N1", "1001", "Ana", "Diaz", "4")])
    with pytest.raises(StaleDatasetError):
        store.save_match("iready", pairs, report, version)

    assert store.dataset_names(current_only=False) == []
    assert store.reports() == []
    current_ids = {s.id for s in store.load_roster()}
    assert current_ids == {"N1"}


def test_roster_snapshot(tmp_path, roster):
    store = RosterStore(tmp_path / "store.json")
    assert store.roster_snapshot() == (0, [])
    store.replace_roster(roster)
    assert store.roster_snapshot() == (1, roster)
