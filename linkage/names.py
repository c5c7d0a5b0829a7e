from __future__ import annotations
import re
from dataclasses import dataclass
from typing import Any, Mapping, Union
from .utils import to_ascii

# кавычки по краям - артефакт выгрузки из таблиц
_EDGE_QUOTES_RE = re.compile(r"^[\"']+|[\"']+$")
_NON_ALPHA_SPACE_RE = re.compile(r"[^a-z\s]")
_NON_ALPHA_RE = re.compile(r"[^a-z]")

FMT_SEPARATE = "separate_columns"
FMT_LAST_FIRST = "last_first_comma"
FMT_FIRST_LAST = "first_last_space"
FMT_SINGLE = "single_or_unknown"


@dataclass(frozen=True)
class ParsedName:
    first_name: str
    last_name: str
    original_format: str  # только для диагностики, в решениях не участвует

    @property
    def is_low_information(self) -> bool:
        return not canon_part(self.first_name) or not canon_part(self.last_name)

    @property
    def is_empty(self) -> bool:
        return not canon_part(self.first_name) and not canon_part(self.last_name)

    def key(self) -> str:
        return name_key(self.first_name, self.last_name)

    def reversed_key(self) -> str:
        return name_key(self.last_name, self.first_name)


def canon_text(s: Any) -> str:
    """
    Нормализация для сравнения:
    - диакритика -> ASCII
    - lower
    - всё кроме [a-z] и пробелов убирается (апострофы, дефисы, точки)
    - схлопывание пробелов
    """
    if s is None:
        return ""
    t = to_ascii(s).lower()
    t = _NON_ALPHA_SPACE_RE.sub("", t)
    t = re.sub(r"\s+", " ", t).strip()
    return t


def canon_part(s: Any) -> str:
    # одна часть имени без пробелов: "De La Cruz" -> "delacruz", "O'Neil" -> "oneil"
    return _NON_ALPHA_RE.sub("", canon_text(s))


def name_key(first_name: Any, last_name: Any) -> str:
    """
    Ключ сравнения "<фамилия> <имя>". Порядок фиксирован.
    """
    return f"{canon_part(last_name)} {canon_part(first_name)}".strip()


def _clean(s: Any) -> str:
    if s is None:
        return ""
    t = str(s).replace("\ufeff", "").strip()
    t = _EDGE_QUOTES_RE.sub("", t).strip()
    return t


def parse_name(name: Union[str, Mapping[str, Any], None]) -> ParsedName:
    """
    Разбирает имя в одном из форматов:
      1) {"first_name": ..., "last_name": ...}
      2) "Last, First"
      3) "First Last ..." (первое слово - имя, остальное - фамилия)
    Одно слово без разделителя -> имя, фамилия пустая.
    """
    if isinstance(name, Mapping):
        first = _clean(name.get("first_name", name.get("firstName")))
        last = _clean(name.get("last_name", name.get("lastName")))
        if first and last:
            return ParsedName(first, last, FMT_SEPARATE)
        # одна половина - разбираем как строку
        name = first or last

    text = _clean(name)
    if not text:
        return ParsedName("", "", FMT_SINGLE)

    # "JACKSON, KAY'DEN"
    if "," in text:
        last, _, first = text.partition(",")
        return ParsedName(_clean(first), _clean(last), FMT_LAST_FIRST)

    parts = text.split()
    if len(parts) >= 2:
        return ParsedName(parts[0], " ".join(parts[1:]), FMT_FIRST_LAST)

    return ParsedName(parts[0], "", FMT_SINGLE)
