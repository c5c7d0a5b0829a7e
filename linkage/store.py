from __future__ import annotations
import logging
from collections import Counter
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple
from .grades import normalize_grade
from .models import EnrolledStudent, MatchedPairs, MatchingReport, StaleDatasetError
from .utils import load_json, save_json, store_path

logger = logging.getLogger(__name__)


def _empty() -> Dict[str, Any]:
    return {"roster_version": 0, "roster": [], "datasets": {}, "reports": []}


class RosterStore:
    """
    Хранилище ростера и сопоставленных данных в одном JSON-файле.
    Ростер меняется только целиком: replace_roster увеличивает версию и сбрасывает все
    датасеты, сопоставленные со старым ростером. История отчётов сохраняется.
    """

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path is not None else store_path()

    def _load(self) -> Dict[str, Any]:
        obj = load_json(self.path, None)
        if not isinstance(obj, dict):
            return _empty()
        base = _empty()
        base.update({k: obj[k] for k in base if k in obj})
        return base

    @property
    def roster_version(self) -> int:
        return int(self._load().get("roster_version", 0))

    def load_roster(self) -> List[EnrolledStudent]:
        return self.roster_snapshot()[1]

    def roster_snapshot(self) -> Tuple[int, List[EnrolledStudent]]:
        # версия и ростер читаются вместе; частичного ростера не бывает
        doc = self._load()
        students = [EnrolledStudent.from_dict(d) for d in doc["roster"] if isinstance(d, dict)]
        return int(doc.get("roster_version", 0)), students

    def replace_roster(self, students: Iterable[EnrolledStudent]) -> int:
        doc = self._load()
        dropped = len(doc["datasets"])
        doc["roster_version"] = int(doc.get("roster_version", 0)) + 1
        doc["roster"] = [s.to_dict() for s in students]
        # строки старых датасетов удаляются, остаётся только отметка о версии - для StaleDatasetError
        doc["datasets"] = {
            name: {"roster_version": ds.get("roster_version", 0), "rows": []}
            for name, ds in doc["datasets"].items()
        }
        save_json(self.path, doc)
        if dropped:
            logger.warning("Roster replaced: %d matched datasets invalidated", dropped)
        logger.info("Roster version %d: %d students", doc["roster_version"], len(doc["roster"]))
        return doc["roster_version"]

    def save_match(self, name: str, pairs: MatchedPairs, report: MatchingReport, roster_version: int) -> int:
        """
        Сохраняет только сопоставленные строки (ключ - внутренний id ученика) и всегда - отчёт.
        roster_version - версия ростера, с которым реально сопоставляли (из roster_snapshot);
        если ростер с тех пор заменён, ничего не пишется и поднимается StaleDatasetError.
        Возвращает количество сохранённых строк.
        """
        doc = self._load()
        if int(roster_version) != int(doc["roster_version"]):
            logger.warning("Refusing to save %r: matched against roster v%s, current is v%s",
                           name, roster_version, doc["roster_version"])
            raise StaleDatasetError(f"dataset {name!r} was matched against an old roster, re-run matching")
        rows = []
        for row, res in pairs:
            if not res.matched:
                continue
            rows.append({
                "student_id": res.student_id,
                "matched_by": res.matched_by,
                "confidence": res.confidence,
                "row_number": row.row_number,
                "data": {str(k): _plain(v) for k, v in row.raw.items()},
            })

        doc["datasets"][name] = {"roster_version": doc["roster_version"], "rows": rows}
        doc["reports"].append({
            "dataset": name,
            "roster_version": doc["roster_version"],
            "created_at": datetime.now(timezone.utc).isoformat(),
            "report": report.to_dict(),
        })
        save_json(self.path, doc)
        return len(rows)

    def load_dataset(self, name: str) -> List[Dict[str, Any]]:
        doc = self._load()
        ds = doc["datasets"].get(name)
        if ds is None:
            raise KeyError(name)
        if int(ds.get("roster_version", -1)) != int(doc["roster_version"]):
            logger.warning("Dataset %r was matched against roster v%s", name, ds.get("roster_version"))
            raise StaleDatasetError(f"dataset {name!r} must be re-matched against the current roster")
        return list(ds.get("rows", []))

    def dataset_names(self, current_only: bool = True) -> List[str]:
        doc = self._load()
        return sorted(
            name for name, ds in doc["datasets"].items()
            if not current_only or int(ds.get("roster_version", -1)) == int(doc["roster_version"])
        )

    def reports(self) -> List[Dict[str, Any]]:
        return list(self._load()["reports"])

    def enrollment_stats(self) -> Dict[str, Any]:
        roster = self.load_roster()
        dist = Counter(normalize_grade(s.grade) or "Unknown" for s in roster)
        return {"total_students": len(roster), "grade_distribution": dict(dist)}


def _plain(v: Any) -> Any:
    # JSON-совместимое значение (numpy/pandas скаляры, NaN)
    if v is None or isinstance(v, (str, bool, int)):
        return v
    if isinstance(v, float):
        return None if v != v else v
    return str(v)
