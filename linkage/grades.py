from __future__ import annotations
import re
from typing import Any
from .utils import strip_formula, to_ascii

GRADE_PRE = "Pre"
GRADE_K = "K"

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]")
_ORDINAL_NUM_RE = re.compile(r"^0*(\d{1,2})(st|nd|rd|th)?$")
# "grade 3", "gr3", "3rd grade", "grade03"
_GRADE_WORD_RE = re.compile(r"^(?:grade|grd|gr|g)(?=.)|(?<=.)(?:grade|grd|gr)$")

_PRE_TOKENS = {
    "pre", "prek", "pk", "pk3", "pk4", "vpk", "prekindergarten", "prekinder",
    "prekg", "preschool", "p3", "p4",
}
_K_TOKENS = {"k", "kg", "kn", "kdg", "kinder", "kindergarten", "kindergarden", "0", "00"}

_ORDINAL_WORDS = {
    "first": 1, "second": 2, "third": 3, "fourth": 4, "fifth": 5, "sixth": 6,
    "seventh": 7, "eighth": 8, "ninth": 9, "tenth": 10, "eleventh": 11, "twelfth": 12,
    "one": 1, "two": 2, "three": 3, "four": 4, "five": 5, "six": 6,
    "seven": 7, "eight": 8, "nine": 9, "ten": 10, "eleven": 11, "twelve": 12,
}


def normalize_grade(value: Any) -> str:
    """
    Приводит уровень класса к одному из: Pre, K, 1..12.
    Понимает: "K"/"Kindergarten"/"KG", "PK"/"Pre-K", "3rd", "Third", "03", ="03", "Grade 3".
    Нераспознанное -> lowercase без не-алфавитно-цифровых символов (чтобы одинаковые
    нераспознанные значения всё равно совпадали). Пустое -> "".
    """
    raw = strip_formula(value)
    t = _NON_ALNUM_RE.sub("", to_ascii(raw).lower())
    if not t:
        return ""

    g = _canon_token(t)
    if g:
        return g

    # срезаем слово "grade" с любой стороны и пробуем ещё раз
    stripped = _GRADE_WORD_RE.sub("", t)
    if stripped and stripped != t:
        g = _canon_token(stripped)
        if g:
            return g

    return t


def _canon_token(t: str) -> str:
    if t in _PRE_TOKENS:
        return GRADE_PRE
    if t in _K_TOKENS:
        return GRADE_K
    if t in _ORDINAL_WORDS:
        return str(_ORDINAL_WORDS[t])

    m = _ORDINAL_NUM_RE.match(t)
    if m:
        n = int(m.group(1))
        if n == 0:
            return GRADE_K
        if 1 <= n <= 12:
            return str(n)
    return ""


def grades_equal(a: Any, b: Any) -> bool | None:
    """
    True/False если уровень есть с обеих сторон, иначе None (сигнала нет).
    """
    ga, gb = normalize_grade(a), normalize_grade(b)
    if not ga or not gb:
        return None
    return ga == gb
