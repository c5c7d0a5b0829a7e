from __future__ import annotations
import uuid
from typing import Any, Dict, List, Mapping, Optional
import pandas as pd
from .models import CandidateRow, EnrolledStudent
from .roster_index import normalize_student_number
from .utils import is_blank

CANDIDATE_FIELDS = ("student_id", "first_name", "last_name", "full_name", "grade", "teacher")
ROSTER_FIELDS = ("id", "student_number", "state_id", "first_name", "last_name", "grade", "teacher")

ORIGIN_COL = "_origin_row"


def _check_columns(df: pd.DataFrame, columns: Mapping[str, Optional[str]], allowed) -> Dict[str, str]:
    """
    Явная карта "поле -> колонка". Пустые значения пропускаются, неизвестное поле или
    отсутствующая колонка -> KeyError (угадывать колонки не будем).
    """
    out: Dict[str, str] = {}
    for fld, col in columns.items():
        if not col:
            continue
        if fld not in allowed:
            raise KeyError(f"unknown field {fld!r}, expected one of {allowed}")
        if col not in df.columns:
            raise KeyError(f"column {col!r} not found in table")
        out[fld] = col
    return out


def _cell(row: Mapping[str, Any], col: Optional[str]) -> str:
    if not col:
        return ""
    v = row.get(col)
    # пусто только None/NaN; строки "Null", "None" - это настоящие фамилии
    if v is None or (not isinstance(v, str) and pd.isna(v)):
        return ""
    return str(v).strip()


def candidates_from_frame(df: pd.DataFrame, columns: Mapping[str, Optional[str]]) -> List[CandidateRow]:
    """
    DataFrame датасета -> CandidateRow. Вся исходная строка уходит в raw как есть.
    Номер строки берётся из _origin_row (ingest), иначе - позиция с 1.
    """
    cols = _check_columns(df, columns, CANDIDATE_FIELDS)
    out: List[CandidateRow] = []
    for pos, rec in enumerate(df.to_dict(orient="records"), start=1):
        origin = rec.get(ORIGIN_COL)
        row_number = int(origin) if not is_blank(origin) else pos
        raw = {k: v for k, v in rec.items() if k != ORIGIN_COL}
        out.append(CandidateRow(
            student_id=_cell(rec, cols.get("student_id")),
            first_name=_cell(rec, cols.get("first_name")),
            last_name=_cell(rec, cols.get("last_name")),
            full_name=_cell(rec, cols.get("full_name")),
            grade=_cell(rec, cols.get("grade")),
            teacher=_cell(rec, cols.get("teacher")),
            row_number=row_number,
            raw=raw,
        ))
    return out


def new_student_id() -> str:
    return f"stu_{uuid.uuid4().hex[:16]}"


def roster_from_frame(df: pd.DataFrame, columns: Mapping[str, Optional[str]]) -> List[EnrolledStudent]:
    """
    Файл зачисления -> EnrolledStudent.
    Строки без номера и без имени пропускаются (это не ученик, а мусор выгрузки).
    Если колонка id не указана - внутренний id генерируется.
    """
    cols = _check_columns(df, columns, ROSTER_FIELDS)
    out: List[EnrolledStudent] = []
    for rec in df.to_dict(orient="records"):
        number = normalize_student_number(_cell(rec, cols.get("student_number")))
        first = _cell(rec, cols.get("first_name"))
        last = _cell(rec, cols.get("last_name"))
        if not number and not first and not last:
            continue
        sid = _cell(rec, cols.get("id")) if "id" in cols else new_student_id()
        out.append(EnrolledStudent(
            id=sid,
            student_number=number,
            first_name=first,
            last_name=last,
            grade=_cell(rec, cols.get("grade")),
            teacher=_cell(rec, cols.get("teacher")),
            state_id=normalize_student_number(_cell(rec, cols.get("state_id"))),
        ))
    return out
