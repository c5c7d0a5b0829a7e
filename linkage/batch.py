from __future__ import annotations
import logging
import math
from concurrent.futures import ThreadPoolExecutor
from functools import reduce
from typing import Callable, Iterable, List, Optional, Sequence, Tuple, Union
from .models import (
    BANDS, CandidateRow, EnrolledStudent, MatchedPairs, MatchingReport,
    STATUS_AMBIGUOUS, STATUS_INSUFFICIENT,
)
from .params import MatchParams
from .pipeline import match_row
from .roster_index import RosterIndex

logger = logging.getLogger(__name__)

Roster = Union[RosterIndex, Iterable[EnrolledStudent]]


def build_report(
    pairs: MatchedPairs,
    total_students_in_enrollment: int,
    cancelled: bool = False,
) -> MatchingReport:
    """
    Собирает MatchingReport по списку (строка, результат).
    duplicate_matches = сопоставленных строк - различных сопоставленных учеников
    (важно для файла зачисления, где каждый ученик должен встречаться один раз).
    """
    bands = {b: 0 for b in BANDS}
    matched_ids = set()
    matched_rows = 0
    no_match = ambiguous = insufficient = 0
    unmatched_names: List[str] = []

    for row, res in pairs:
        bands[res.band] = bands.get(res.band, 0) + 1
        if res.matched:
            matched_rows += 1
            matched_ids.add(res.student_id)
            continue

        unmatched_names.append(row.label())
        if res.status == STATUS_AMBIGUOUS:
            ambiguous += 1
        elif res.status == STATUS_INSUFFICIENT:
            insufficient += 1
        else:
            no_match += 1

    return _make_report(
        total_students=total_students_in_enrollment,
        total_rows=len(pairs),
        matched_rows=matched_rows,
        matched_ids=matched_ids,
        no_match=no_match,
        ambiguous=ambiguous,
        insufficient=insufficient,
        bands=bands,
        unmatched_names=unmatched_names,
        cancelled=cancelled,
    )


def merge_reports(a: MatchingReport, b: MatchingReport) -> MatchingReport:
    """
    Слияние частичных отчётов (шарды одного батча): суммы, конкатенация списков, объединение id.
    Ассоциативно; ростер у шардов общий, поэтому total_students_in_enrollment берётся максимальный.
    """
    bands = {k: a.band_count(k) + b.band_count(k) for k in BANDS}
    return _make_report(
        total_students=max(a.total_students_in_enrollment, b.total_students_in_enrollment),
        total_rows=a.total_rows_in_dataset + b.total_rows_in_dataset,
        matched_rows=a.matched_rows + b.matched_rows,
        matched_ids=set(a.matched_student_ids) | set(b.matched_student_ids),
        no_match=a.no_match_rows + b.no_match_rows,
        ambiguous=a.ambiguous_rows + b.ambiguous_rows,
        insufficient=a.insufficient_rows + b.insufficient_rows,
        bands=bands,
        unmatched_names=list(a.unmatched_student_names) + list(b.unmatched_student_names),
        cancelled=a.cancelled or b.cancelled,
    )


def _make_report(
    *,
    total_students: int,
    total_rows: int,
    matched_rows: int,
    matched_ids: set,
    no_match: int,
    ambiguous: int,
    insufficient: int,
    bands: dict,
    unmatched_names: List[str],
    cancelled: bool,
) -> MatchingReport:
    match_rate = int(math.floor(100.0 * matched_rows / total_rows + 0.5)) if total_rows else 0
    return MatchingReport(
        total_students_in_enrollment=total_students,
        total_rows_in_dataset=total_rows,
        matched_rows=matched_rows,
        matched_students=len(matched_ids),
        unmatched_rows=total_rows - matched_rows,
        no_match_rows=no_match,
        ambiguous_rows=ambiguous,
        insufficient_rows=insufficient,
        duplicate_matches=matched_rows - len(matched_ids),
        match_rate=match_rate,
        confidence=tuple((b, int(bands.get(b, 0))) for b in BANDS),
        unmatched_student_names=tuple(unmatched_names),
        matched_student_ids=tuple(sorted(matched_ids)),
        cancelled=cancelled,
    )


def _match_chunk(
    rows: Sequence[CandidateRow],
    index: RosterIndex,
    params: MatchParams,
    should_stop: Optional[Callable[[], bool]],
) -> Tuple[MatchedPairs, bool]:
    pairs: MatchedPairs = []
    for row in rows:
        # отмена - только между строками, не внутри подсчёта похожести
        if should_stop is not None and should_stop():
            return pairs, True
        res = match_row(row, index, params)
        logger.debug(
            "Row %s: %s by=%s confidence=%s",
            row.row_number, res.status, res.matched_by, res.confidence,
        )
        pairs.append((row, res))
    return pairs, False


def match_dataset(
    rows: Sequence[CandidateRow],
    roster: Roster,
    params: Optional[MatchParams] = None,
    should_stop: Optional[Callable[[], bool]] = None,
    workers: int = 1,
) -> Tuple[MatchedPairs, MatchingReport]:
    """
    Прогоняет все строки через match_row, индекс ростера строится один раз.
    Возвращает:
      - pairs: [(CandidateRow, MatchResult)] в исходном порядке строк
      - report: MatchingReport (строится всегда, даже при низком match rate или отмене)
    workers > 1 - строки режутся на шарды, индекс общий и только читается, отчёты сливаются merge_reports.
    RosterIndexError из построения индекса пробрасывается - это единственная фатальная ошибка батча.
    """
    p = params or MatchParams()
    index = roster if isinstance(roster, RosterIndex) else RosterIndex(roster)
    rows = list(rows)

    if workers <= 1 or len(rows) < 2:
        pairs, cancelled = _match_chunk(rows, index, p, should_stop)
        report = build_report(pairs, len(index), cancelled=cancelled)
    else:
        size = -(-len(rows) // workers)
        chunks = [rows[i:i + size] for i in range(0, len(rows), size)]
        with ThreadPoolExecutor(max_workers=workers) as pool:
            parts = list(pool.map(lambda c: _match_chunk(c, index, p, should_stop), chunks))
        pairs = [pair for chunk_pairs, _ in parts for pair in chunk_pairs]
        report = reduce(
            merge_reports,
            [build_report(chunk_pairs, len(index), cancelled=c) for chunk_pairs, c in parts],
        )

    if report.cancelled:
        logger.warning("Matching cancelled after %d of %d rows", report.total_rows_in_dataset, len(rows))

    logger.info(
        "Match report: %d/%d rows matched = %d%% (exact=%d high=%d medium=%d low=%d uncertain=%d)",
        report.matched_rows, report.total_rows_in_dataset, report.match_rate,
        report.band_count("exact"), report.band_count("high"), report.band_count("medium"),
        report.band_count("low"), report.band_count("uncertain"),
    )
    return pairs, report


def matched_only(pairs: MatchedPairs) -> MatchedPairs:
    # сохранять как данные можно только сопоставленные строки
    return [(row, res) for row, res in pairs if res.matched]
