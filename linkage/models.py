from __future__ import annotations
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional, Tuple

# Полосы уверенности (от сильной к слабой)
BANDS = ("exact", "high", "medium", "low", "uncertain")

# Итог сопоставления строки
STATUS_MATCHED = "matched"
STATUS_AMBIGUOUS = "ambiguous"
STATUS_NO_MATCH = "no_match"
STATUS_INSUFFICIENT = "insufficient"

INSUFFICIENT_REASON = "insufficient identifying information"


class RosterIndexError(ValueError):
    """Ростер содержит структурно битые записи, индекс построить нельзя (батч прерывается)."""


class StaleDatasetError(LookupError):
    """Данные сопоставлены со старым ростером, после замены ростера их нужно сопоставить заново."""


@dataclass(frozen=True)
class EnrolledStudent:
    """
    Каноническая запись ученика из файла зачисления.
    id - внутренний идентификатор (не меняется),
    student_number - районный ID,
    state_id - дополнительный (штатный) ID, если есть.
    """
    id: str
    student_number: str = ""
    first_name: str = ""
    last_name: str = ""
    grade: str = ""
    teacher: str = ""
    state_id: str = ""

    @property
    def display_name(self) -> str:
        if self.last_name and self.first_name:
            return f"{self.last_name}, {self.first_name}"
        return self.last_name or self.first_name

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "EnrolledStudent":
        def s(k: str) -> str:
            v = d.get(k)
            return "" if v is None else str(v).strip()

        return cls(
            id=s("id"),
            student_number=s("student_number"),
            first_name=s("first_name"),
            last_name=s("last_name"),
            grade=s("grade"),
            teacher=s("teacher"),
            state_id=s("state_id"),
        )


@dataclass(frozen=True)
class CandidateRow:
    """
    Строка загруженного датасета после адаптера: фиксированные поля + исходная строка целиком (raw).
    student_id - ID из системы-источника, не внутренний id.
    """
    student_id: str = ""
    first_name: str = ""
    last_name: str = ""
    full_name: str = ""
    grade: str = ""
    teacher: str = ""
    row_number: Optional[int] = None
    raw: Dict[str, Any] = field(default_factory=dict, compare=False)

    def label(self) -> str:
        # подпись для списка "не сопоставлено"
        if self.full_name.strip():
            return self.full_name.strip()
        first, last = self.first_name.strip(), self.last_name.strip()
        if first and last:
            return f"{last}, {first}"
        if first or last:
            return first or last
        if self.student_id.strip():
            return f"ID {self.student_id.strip()}"
        if self.row_number is not None:
            return f"Row {self.row_number}"
        return "Unknown"


@dataclass(frozen=True)
class MatchResult:
    matched: bool
    status: str
    confidence: int
    band: str
    reason: str
    matched_by: Optional[str] = None
    student_id: Optional[str] = None
    alternatives: Tuple[EnrolledStudent, ...] = ()
    warnings: Tuple[str, ...] = ()
    signals: Dict[str, Any] = field(default_factory=dict, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "matched": self.matched,
            "status": self.status,
            "matched_student_id": self.student_id,
            "confidence": self.confidence,
            "band": self.band,
            "matched_by": self.matched_by,
            "reason": self.reason,
            "alternatives": [a.id for a in self.alternatives],
            "warnings": list(self.warnings),
            "signals": dict(self.signals),
        }


@dataclass(frozen=True)
class MatchingReport:
    """
    Итог по батчу. Создаётся один раз на импорт и не меняется.
    matched_student_ids хранится, чтобы частичные отчёты (шарды) можно было сливать без потери duplicate_matches.
    """
    total_students_in_enrollment: int
    total_rows_in_dataset: int
    matched_rows: int
    matched_students: int
    unmatched_rows: int
    no_match_rows: int
    ambiguous_rows: int
    insufficient_rows: int
    duplicate_matches: int
    match_rate: int
    confidence: Tuple[Tuple[str, int], ...]
    unmatched_student_names: Tuple[str, ...]
    matched_student_ids: Tuple[str, ...] = ()
    cancelled: bool = False

    def band_count(self, band: str) -> int:
        return dict(self.confidence).get(band, 0)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalStudentsInEnrollment": self.total_students_in_enrollment,
            "totalRowsInDataset": self.total_rows_in_dataset,
            "matchedRows": self.matched_rows,
            "matchedStudents": self.matched_students,
            "unmatchedRows": self.unmatched_rows,
            "noMatchRows": self.no_match_rows,
            "ambiguousRows": self.ambiguous_rows,
            "insufficientRows": self.insufficient_rows,
            "duplicateMatches": self.duplicate_matches,
            "matchRate": self.match_rate,
            "confidence": dict(self.confidence),
            "unmatchedStudentNames": list(self.unmatched_student_names),
            "cancelled": self.cancelled,
        }


MatchedPair = Tuple[CandidateRow, MatchResult]
MatchedPairs = List[MatchedPair]
