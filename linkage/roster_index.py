from __future__ import annotations
import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Tuple
from .grades import normalize_grade
from .models import EnrolledStudent, RosterIndexError
from .names import name_key
from .utils import strip_formula

logger = logging.getLogger(__name__)


def normalize_student_number(value, strip_zero_padding: bool = False) -> str:
    """
    ID из выгрузки -> сравнимый вид: снимаем ="..." и пробелы; "0" считается пустым.
    strip_zero_padding - для систем, которые дополняют ID нулями слева.
    """
    t = strip_formula(value).replace(" ", "")
    if t.lower() in ("", "nan", "none", "null"):
        return ""
    if strip_zero_padding:
        t = t.lstrip("0")
    if t in ("", "0"):
        return ""
    return t


@dataclass(frozen=True)
class IndexedStudent:
    # предвычисленные канонические поля, чтобы не нормализовать ростер на каждую строку
    student: EnrolledStudent
    key: str
    reversed_key: str
    grade: str


class RosterIndex:
    """
    Индекс ростера, строится один раз на батч и дальше только читается.
    - по районному номеру (и по номеру без ведущих нулей)
    - по штатному ID
    - по каноническому ключу имени -> список id (однофамильцы-тёзки сохраняются все)
    """

    def __init__(self, students: Iterable[EnrolledStudent]):
        entries: Dict[str, IndexedStudent] = {}
        by_number: Dict[str, List[str]] = {}
        by_number_unpadded: Dict[str, List[str]] = {}
        by_state_id: Dict[str, List[str]] = {}
        by_name: Dict[str, List[str]] = {}

        for pos, st in enumerate(students):
            if not isinstance(st, EnrolledStudent):
                raise RosterIndexError(f"roster record #{pos + 1} is not an EnrolledStudent: {type(st).__name__}")
            sid = (st.id or "").strip()
            if not sid:
                raise RosterIndexError(f"roster record #{pos + 1} has no internal id")
            if sid in entries:
                raise RosterIndexError(f"roster record #{pos + 1} repeats internal id {sid!r}")

            key = name_key(st.first_name, st.last_name)
            entries[sid] = IndexedStudent(
                student=st,
                key=key,
                reversed_key=name_key(st.last_name, st.first_name),
                grade=normalize_grade(st.grade),
            )

            num = normalize_student_number(st.student_number)
            if num:
                by_number.setdefault(num, []).append(sid)
                unpadded = normalize_student_number(num, strip_zero_padding=True)
                if unpadded:
                    by_number_unpadded.setdefault(unpadded, []).append(sid)

            state = normalize_student_number(st.state_id)
            if state:
                by_state_id.setdefault(state.upper(), []).append(sid)

            if key:
                by_name.setdefault(key, []).append(sid)

        dup_numbers = [n for n, ids in by_number.items() if len(ids) > 1]
        if dup_numbers:
            logger.warning("Roster has %d duplicated student numbers, e.g. %s", len(dup_numbers), dup_numbers[:3])

        self._entries = MappingProxyType(entries)
        self._order: Tuple[str, ...] = tuple(sorted(entries))
        self._by_number = _freeze(by_number)
        self._by_number_unpadded = _freeze(by_number_unpadded)
        self._by_state_id = _freeze(by_state_id)
        self._by_name = _freeze(by_name)

        logger.info(
            "Roster index built: %d students, %d student numbers, %d state ids, %d unique names",
            len(entries), len(self._by_number), len(self._by_state_id), len(self._by_name),
        )

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, student_id: str) -> bool:
        return student_id in self._entries

    def get(self, student_id: str) -> EnrolledStudent:
        return self._entries[student_id].student

    def entry(self, student_id: str) -> IndexedStudent:
        return self._entries[student_id]

    def entries(self) -> Iterable[IndexedStudent]:
        # в порядке id, чтобы перебор был воспроизводимым
        for sid in self._order:
            yield self._entries[sid]

    def by_student_number(self, value, strip_zero_padding: bool = False) -> Tuple[str, ...]:
        num = normalize_student_number(value)
        if not num:
            return ()
        hit = self._by_number.get(num, ())
        if hit or not strip_zero_padding:
            return hit
        return self._by_number_unpadded.get(normalize_student_number(num, strip_zero_padding=True), ())

    def by_state_id(self, value) -> Tuple[str, ...]:
        state = normalize_student_number(value)
        if not state:
            return ()
        return self._by_state_id.get(state.upper(), ())

    def by_name_key(self, key: str) -> Tuple[str, ...]:
        if not key:
            return ()
        return self._by_name.get(key, ())

    def stats(self) -> Dict[str, int]:
        return {
            "total_students": len(self._entries),
            "students_with_number": sum(len(v) for v in self._by_number.values()),
            "students_with_state_id": sum(len(v) for v in self._by_state_id.values()),
            "unique_names": len(self._by_name),
        }


def _freeze(d: Dict[str, List[str]]) -> Mapping[str, Tuple[str, ...]]:
    return MappingProxyType({k: tuple(sorted(v)) for k, v in d.items()})
