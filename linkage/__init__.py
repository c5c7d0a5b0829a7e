"""
Этот пакет содержит:
- нормализацию имён и уровней класса
- похожесть имён (Левенштейн)
- индекс ростера зачисления
- сопоставление строк датасетов с учениками (ID -> имя+класс -> имя -> fuzzy)
- отчёт о сопоставлении
- чтение загрузок, хранилище ростера и экспорт
"""
from .models import (CandidateRow, EnrolledStudent, MatchResult, MatchingReport, RosterIndexError, StaleDatasetError)
from .names import parse_name, name_key, canon_text
from .grades import normalize_grade
from .similarity import similarity, teacher_similar
from .params import MatchParams, load_params
from .roster_index import RosterIndex
from .pipeline import match_row
from .batch import match_dataset, build_report, merge_reports, matched_only
from .adapters import candidates_from_frame, roster_from_frame
from .ingest import load_table_from_upload
from .store import RosterStore
from .export import results_to_frame, report_to_frame, export_match_to_excel_bytes

__all__ = [
    "CandidateRow",
    "EnrolledStudent",
    "MatchResult",
    "MatchingReport",
    "RosterIndexError",
    "StaleDatasetError",
    "parse_name",
    "name_key",
    "canon_text",
    "normalize_grade",
    "similarity",
    "teacher_similar",
    "MatchParams",
    "load_params",
    "RosterIndex",
    "match_row",
    "match_dataset",
    "build_report",
    "merge_reports",
    "matched_only",
    "candidates_from_frame",
    "roster_from_frame",
    "load_table_from_upload",
    "RosterStore",
    "results_to_frame",
    "report_to_frame",
    "export_match_to_excel_bytes",
]
