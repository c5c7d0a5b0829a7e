import pytest

from linkage.models import CandidateRow, EnrolledStudent


def make_student(id, number="", first="", last="", grade="", teacher="", state_id=""):
    return EnrolledStudent(
        id=id, student_number=number, first_name=first, last_name=last,
        grade=grade, teacher=teacher, state_id=state_id,
    )


@pytest.fixture
def roster():
    return [
        make_student("S1", "1001", "Ana", "Diaz", "3", "Garcia"),
        make_student("S2", "2002", "John", "Smith", "4", "Johnson"),
        make_student("L1", "3003", "Sam", "Lee", "3"),
        make_student("L2", "3004", "Sam", "Lee", "5"),
    ]


@pytest.fixture
def rows():
    return [
        CandidateRow(student_id="1001", row_number=1),
        CandidateRow(full_name="John Smith", grade="4", row_number=2),
        CandidateRow(full_name="Sam Lee", row_number=3),
        CandidateRow(full_name="Nobody Here", row_number=4),
        CandidateRow(row_number=5),
    ]
