import os
import re
import json
import unicodedata
from pathlib import Path
from typing import Any

BASE_DIR = Path(__file__).resolve().parent.parent
DEFAULT_DATA_DIR = BASE_DIR / "data"

APPDATA = os.environ.get("APPDATA")
if APPDATA:
    USER_DATA_DIR = Path(APPDATA) / "RosterMatch" / "data"
else:
    USER_DATA_DIR = DEFAULT_DATA_DIR  # fallback

def load_json(path: Path, default: Any):
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, ValueError):
        return default

def save_json(path: Path, obj: Any):
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    with open(tmp, "w", encoding="utf-8") as f:
        json.dump(obj, f, ensure_ascii=False, indent=2)
    # замена целиком, чтобы не оставить полузаписанный ростер
    os.replace(tmp, path)

_FORMULA_RE = re.compile(r'^="?(.*?)"?$')

def to_ascii(s: Any) -> str:
    # José -> Jose, Nuñez -> Nunez
    if s is None:
        return ""
    t = unicodedata.normalize("NFKD", str(s))
    return "".join(c for c in t if not unicodedata.combining(c))

def strip_formula(s: Any) -> str:
    """
    Снимает артефакты выгрузки Excel: ="20107825" -> 20107825
    """
    if s is None:
        return ""
    t = str(s).replace("\ufeff", "").strip()
    m = _FORMULA_RE.match(t)
    if m and t.startswith("="):
        t = m.group(1)
    return t.strip().strip('"').strip()

def is_blank(v: Any) -> bool:
    if v is None:
        return True
    t = str(v).strip().lower()
    return t in ("", "nan", "none", "null")

def rules_path() -> Path:
    return DEFAULT_DATA_DIR / "rules.json"

def store_path() -> Path:
    USER_DATA_DIR.mkdir(parents=True, exist_ok=True)
    return USER_DATA_DIR / "roster_store.json"
