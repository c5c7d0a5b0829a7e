from __future__ import annotations
import csv
from io import BytesIO
import pandas as pd
from .adapters import ORIGIN_COL
# =========================

# CSV: устойчивое чтение из bytes (выгрузки SIS/платформ тестирования)
# =========================
_SEPARATORS = ",;\t|"


def _sniff_sep(data: bytes, enc: str) -> str:
    # SIS с европейской локалью пишут ';', платформы тестирования - табы
    sample = data[:65536].decode(enc, errors="replace")
    try:
        return csv.Sniffer().sniff(sample, delimiters=_SEPARATORS).delimiter
    except csv.Error:
        header = next((ln for ln in sample.splitlines() if ln.strip()), "")
        return max(_SEPARATORS, key=header.count)


def _read_csv_bytes(data: bytes) -> pd.DataFrame:
    # всё читаем строками: ID вида 00123456 не должны превращаться в числа
    encodings = ["utf-8-sig", "utf-8", "cp1252"]
    last_err: Exception | None = None

    for enc in encodings:
        try:
            return pd.read_csv(
                BytesIO(data),
                sep=_sniff_sep(data, enc),
                dtype=str,
                keep_default_na=False,
                engine="python",
                encoding=enc,
                skip_blank_lines=True,
            )
        except (UnicodeDecodeError, pd.errors.ParserError) as e:
            last_err = e
            continue

    raise ValueError(f"cannot read CSV: {last_err}")


def _read_excel_bytes(data: bytes) -> pd.DataFrame:
    # первый лист; выгрузки зачисления всегда одностраничные
    return pd.read_excel(BytesIO(data), sheet_name=0, dtype=str, engine="openpyxl").fillna("")
# =========================

# Main: upload -> table
# =========================
def load_table_from_upload(name: str, data: bytes) -> pd.DataFrame:
    """
    Возвращает DataFrame со строковыми колонками из заголовка файла и колонкой _origin_row
    (номер строки данных, начиная с 1). Колонки не угадываются - их выбирает пользователь.
    """
    if name.lower().endswith((".xlsx", ".xlsm")):
        df = _read_excel_bytes(data)
    else:
        df = _read_csv_bytes(data)

    df.columns = [str(c).replace("\ufeff", "").strip() for c in df.columns]
    df.insert(0, ORIGIN_COL, range(1, len(df) + 1))
    return df

