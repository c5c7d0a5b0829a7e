from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple
from .grades import normalize_grade
from .models import (
    CandidateRow, EnrolledStudent, MatchResult,
    STATUS_AMBIGUOUS, STATUS_INSUFFICIENT, STATUS_MATCHED, STATUS_NO_MATCH, INSUFFICIENT_REASON,
)
from .names import FMT_SINGLE, ParsedName, parse_name
from .params import MatchParams
from .roster_index import IndexedStudent, RosterIndex, normalize_student_number
from .similarity import similarity, teacher_similar

logger = logging.getLogger(__name__)

MATCHED_BY_ID = "id"
MATCHED_BY_NAME_GRADE = "name-grade"
MATCHED_BY_NAME_ONLY = "name-only"
MATCHED_BY_FUZZY = "fuzzy"

_DEFAULT_PARAMS = MatchParams()


def resolve_name(row: CandidateRow) -> ParsedName:
    # отдельные колонки имеют приоритет над полным именем
    first, last = (row.first_name or "").strip(), (row.last_name or "").strip()
    if first and last:
        return parse_name({"first_name": first, "last_name": last})
    if (row.full_name or "").strip():
        return parse_name(row.full_name)
    if last:
        return ParsedName("", last.strip("\"'").strip(), FMT_SINGLE)
    return parse_name(first)


def match_row(row: CandidateRow, index: RosterIndex, params: Optional[MatchParams] = None) -> MatchResult:
    """
    Сопоставляет одну строку с ростером. Стратегии по порядку, первая однозначная выигрывает:
      1) ID (районный номер, затем штатный ID)
      2) имя + класс
      3) только имя (несколько тёзок -> ambiguous, не угадываем)
      4) fuzzy по Левенштейну с поправками за класс/учителя
    Чистая функция от (row, index): без I/O и без состояния.
    """
    p = params or _DEFAULT_PARAMS
    ctx = _RowContext(row, p)

    if not ctx.student_id and ctx.name.is_empty:
        return MatchResult(
            matched=False,
            status=STATUS_INSUFFICIENT,
            confidence=0,
            band="uncertain",
            reason=INSUFFICIENT_REASON,
        )

    for strategy in (_match_by_id, _match_by_name_grade, _match_by_name_only, _match_fuzzy):
        result = strategy(ctx, index)
        if result is not None:
            return result

    # сюда попадаем только если имени нет, а ID не найден
    return _unmatched(
        STATUS_NO_MATCH, None,
        f"No student with ID {ctx.student_id} in enrollment",
        (),
    )


class _RowContext:
    # нормализованные поля строки, считаются один раз
    def __init__(self, row: CandidateRow, params: MatchParams):
        self.row = row
        self.params = params
        self.student_id = normalize_student_number(row.student_id)
        self.name = resolve_name(row)
        self.key = self.name.key()
        self.grade = normalize_grade(row.grade)
        self.teacher = (row.teacher or "").strip()
        self.label = row.label()

    def grade_match(self, entry: IndexedStudent) -> Optional[bool]:
        if not self.grade or not entry.grade:
            return None
        return self.grade == entry.grade

    def teacher_match(self, entry: IndexedStudent) -> Optional[bool]:
        if not self.teacher or not (entry.student.teacher or "").strip():
            return None
        return teacher_similar(self.teacher, entry.student.teacher, self.params.teacher_similarity)

    def signals(self, entry: IndexedStudent, name_similarity: Optional[int] = None) -> Dict[str, Any]:
        return {
            "name_similarity": name_similarity,
            "grade_match": self.grade_match(entry),
            "teacher_match": self.teacher_match(entry),
            "name_format": self.name.original_format,
        }

    def grade_warnings(self, entry: IndexedStudent) -> Tuple[str, ...]:
        if self.grade_match(entry) is False:
            return (f"grade mismatch: row grade {self.grade}, enrolled grade {entry.grade}",)
        return ()
# =========================

# 1) ID
# =========================
def _match_by_id(ctx: _RowContext, index: RosterIndex) -> Optional[MatchResult]:
    if not ctx.student_id:
        return None

    ids = index.by_student_number(ctx.student_id, strip_zero_padding=ctx.params.strip_id_zero_padding)
    via = "student ID"
    if not ids:
        ids = index.by_state_id(ctx.student_id)
        via = "state ID"
    if not ids:
        return None

    if len(ids) > 1:
        # номер продублирован в ростере - не выбираем сами
        return _unmatched(
            STATUS_AMBIGUOUS, MATCHED_BY_ID,
            f"{via} {ctx.student_id} belongs to {len(ids)} enrolled students",
            _students(index, ids),
        )

    entry = index.entry(ids[0])
    return MatchResult(
        matched=True,
        status=STATUS_MATCHED,
        student_id=entry.student.id,
        confidence=ctx.params.id_confidence,
        band="exact",
        matched_by=MATCHED_BY_ID,
        reason=f"Matched by {via}: {ctx.student_id}",
        warnings=ctx.grade_warnings(entry),
        signals=ctx.signals(entry),
    )
# =========================

# 2) Имя + класс
# =========================
def _exact_name_ids(ctx: _RowContext, index: RosterIndex) -> Tuple[str, ...]:
    # по одному слову (без имени или без фамилии) точное совпадение не ищем
    if ctx.name.is_low_information:
        return ()
    return index.by_name_key(ctx.key)


def _match_by_name_grade(ctx: _RowContext, index: RosterIndex) -> Optional[MatchResult]:
    if not ctx.grade:
        return None
    ids = _exact_name_ids(ctx, index)
    survivors = [sid for sid in ids if index.entry(sid).grade == ctx.grade]
    if len(survivors) != 1:
        return None

    entry = index.entry(survivors[0])
    return MatchResult(
        matched=True,
        status=STATUS_MATCHED,
        student_id=entry.student.id,
        confidence=ctx.params.name_grade_confidence,
        band="high",
        matched_by=MATCHED_BY_NAME_GRADE,
        reason=f"Matched by name and grade: {ctx.label} in grade {ctx.grade}",
        signals=ctx.signals(entry, 100),
    )
# =========================

# 3) Только имя
# =========================
def _match_by_name_only(ctx: _RowContext, index: RosterIndex) -> Optional[MatchResult]:
    ids = _exact_name_ids(ctx, index)
    if not ids:
        return None

    if len(ids) > 1:
        # тёзки в классе строки - более узкий список для ручного разбора
        same_grade = [sid for sid in ids if ctx.grade and index.entry(sid).grade == ctx.grade]
        if len(same_grade) > 1:
            ids = tuple(same_grade)
        return _unmatched(
            STATUS_AMBIGUOUS, MATCHED_BY_NAME_ONLY,
            f"Multiple possible matches found for: {ctx.label} ({len(ids)} candidates)",
            _students(index, ids),
        )

    entry = index.entry(ids[0])
    return MatchResult(
        matched=True,
        status=STATUS_MATCHED,
        student_id=entry.student.id,
        confidence=ctx.params.name_only_confidence,
        band="medium",
        matched_by=MATCHED_BY_NAME_ONLY,
        reason=f"Matched by name only: {ctx.label} (unique match)",
        warnings=ctx.grade_warnings(entry),
        signals=ctx.signals(entry, 100),
    )
# =========================

# 4) Fuzzy
# =========================
def _adjust(ctx: _RowContext, entry: IndexedStudent, sim: int) -> int:
    p = ctx.params
    score = sim
    gm = ctx.grade_match(entry)
    tm = ctx.teacher_match(entry)
    # бонусы за совпадение, штрафы за расхождение; нет данных - нет поправки
    if gm is True:
        score += p.grade_boost
    elif gm is False:
        score -= p.grade_penalty
    if tm is True:
        score += p.teacher_boost
    elif tm is False:
        score -= p.teacher_penalty
    return max(0, min(100, score))


def score_candidates(ctx: _RowContext, index: RosterIndex) -> List[Tuple[int, int, IndexedStudent]]:
    """
    Возвращает [(adjusted, similarity, entry)] по всему ростеру, отсортировано:
    adjusted по убыванию, затем id по возрастанию.
    Имя сравнивается и в прямом, и в обратном порядке (перепутанные имя/фамилия).
    """
    scored: List[Tuple[int, int, IndexedStudent]] = []
    for entry in index.entries():
        sim = max(similarity(ctx.key, entry.key), similarity(ctx.key, entry.reversed_key))
        if sim <= 0:
            continue
        scored.append((_adjust(ctx, entry, sim), sim, entry))
    scored.sort(key=lambda t: (-t[0], t[2].student.id))
    return scored


def _match_fuzzy(ctx: _RowContext, index: RosterIndex) -> Optional[MatchResult]:
    if ctx.name.is_empty:
        return None

    p = ctx.params
    scored = score_candidates(ctx, index)
    retained = [t for t in scored if t[1] >= p.fuzzy_threshold]

    if not retained:
        near = sorted(
            (t for t in scored if t[1] >= p.suggestion_floor),
            key=lambda t: (-t[1], t[2].student.id),
        )
        return _unmatched(
            STATUS_NO_MATCH, None,
            f"No matching student found for: {ctx.label}",
            tuple(t[2].student for t in near[: p.max_alternatives]),
            {"top_similarity": near[0][1] if near else 0},
        )

    top = retained[0][0]
    tied = [t for t in retained if t[0] == top]
    if len(tied) > 1:
        # ничья на вершине - никогда не назначаем; все ничейные кандидаты в порядке id
        return _unmatched(
            STATUS_AMBIGUOUS, MATCHED_BY_FUZZY,
            f"Multiple possible matches found for: {ctx.label} ({len(tied)} candidates tied at {top}%)",
            tuple(sorted((t[2].student for t in tied), key=lambda s: s.id)),
            {"top_score": top},
        )

    adjusted, sim, entry = retained[0]
    others = tuple(t[2].student for t in retained[1: p.max_alternatives + 1])
    st = entry.student
    return MatchResult(
        matched=True,
        status=STATUS_MATCHED,
        student_id=st.id,
        confidence=adjusted,
        band="low",
        matched_by=MATCHED_BY_FUZZY,
        reason=f"Fuzzy name match: {ctx.label} -> {st.first_name} {st.last_name} ({sim}% similar)",
        alternatives=others,
        warnings=ctx.grade_warnings(entry),
        signals=ctx.signals(entry, sim),
    )
# =========================

# Helpers
# =========================
def _students(index: RosterIndex, ids: Sequence[str]) -> Tuple[EnrolledStudent, ...]:
    return tuple(index.get(sid) for sid in sorted(ids))


def _unmatched(
    status: str,
    matched_by: Optional[str],
    reason: str,
    alternatives: Tuple[EnrolledStudent, ...],
    signals: Optional[Dict[str, Any]] = None,
) -> MatchResult:
    return MatchResult(
        matched=False,
        status=status,
        confidence=0,
        band="uncertain",
        matched_by=matched_by,
        reason=reason,
        alternatives=alternatives,
        signals=signals or {},
    )
