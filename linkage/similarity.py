from __future__ import annotations
import math
from typing import Any
from rapidfuzz.distance import Levenshtein
from .names import canon_part, canon_text


def _squash(s: Any) -> str:
    # для similarity пробелы не важны: "smith john" == "smithjohn"
    return canon_part(s)


def similarity(a: Any, b: Any) -> int:
    """
    Похожесть 0..100 по расстоянию Левенштейна:
      round(100 * (1 - dist / max(len(a), len(b)))), не меньше 0.
    Если хотя бы одна строка после нормализации пустая -> 0 (это никогда не совпадение).
    """
    x, y = _squash(a), _squash(b)
    if not x or not y:
        return 0
    if x == y:
        return 100

    dist = Levenshtein.distance(x, y)
    longest = max(len(x), len(y))
    score = 100.0 * (1.0 - dist / longest)
    # округление "половина вверх", чтобы не зависеть от банковского округления round()
    return max(0, int(math.floor(score + 0.5)))


def teacher_similar(a: Any, b: Any, threshold: int = 80) -> bool:
    """
    Учитель/класс совпадает, если одна строка содержит другую или похожесть > threshold.
    """
    t1, t2 = canon_text(a), canon_text(b)
    if not t1 or not t2:
        return False
    if t1 in t2 or t2 in t1:
        return True
    return similarity(t1, t2) > threshold
