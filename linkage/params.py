from __future__ import annotations
from dataclasses import dataclass, fields
from typing import Any, Dict, Optional
from .utils import load_json, rules_path


@dataclass(frozen=True)
class MatchParams:
    """
    Настраиваемые пороги сопоставления (значения по умолчанию - как в исходной системе).
    Переопределяются секцией "matching" в data/rules.json.
    """
    id_confidence: int = 95
    name_grade_confidence: int = 90
    name_only_confidence: int = 80
    fuzzy_threshold: int = 70
    grade_boost: int = 10
    teacher_boost: int = 5
    grade_penalty: int = 15
    teacher_penalty: int = 5
    teacher_similarity: int = 80
    max_alternatives: int = 5
    # ниже этого fuzzy-кандидаты не предлагаются даже как варианты для ручного разбора
    suggestion_floor: int = 50
    strip_id_zero_padding: bool = True

    @classmethod
    def from_rules(cls, rules: Optional[Dict[str, Any]]) -> "MatchParams":
        section = (rules or {}).get("matching", {}) or {}
        known = {f.name: f for f in fields(cls)}
        kwargs: Dict[str, Any] = {}
        for k, v in section.items():
            if k not in known or v is None:
                continue
            if known[k].type in ("bool", bool):
                kwargs[k] = bool(v)
            else:
                kwargs[k] = int(v)
        return cls(**kwargs)


def load_params() -> MatchParams:
    return MatchParams.from_rules(load_json(rules_path(), {}))
