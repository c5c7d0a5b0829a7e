from __future__ import annotations
import pandas as pd
from io import BytesIO
from .models import MatchedPairs, MatchingReport

RESULT_COLS = [
    "Row", "Name in file", "ID in file", "Grade in file",
    "Status", "Matched student", "Matched by", "Confidence", "Band", "Reason",
    "Warnings", "Alternatives",
]


def results_to_frame(pairs: MatchedPairs, include_raw: bool = False) -> pd.DataFrame:
    """
    Таблица результатов для просмотра/выгрузки: одна строка на строку датасета.
    include_raw - приклеить исходные колонки справа.
    """
    rows = []
    for row, res in pairs:
        rec = {
            "Row": row.row_number if row.row_number is not None else "",
            "Name in file": row.label(),
            "ID in file": row.student_id,
            "Grade in file": row.grade,
            "Status": res.status,
            "Matched student": res.student_id or "",
            "Matched by": res.matched_by or "",
            "Confidence": res.confidence,
            "Band": res.band,
            "Reason": res.reason,
            "Warnings": "; ".join(res.warnings),
            "Alternatives": "; ".join(
                f"{a.display_name} ({a.student_number or a.id}, grade {a.grade or '?'})" for a in res.alternatives
            ),
        }
        if include_raw:
            for k, v in row.raw.items():
                rec.setdefault(str(k), v)
        rows.append(rec)

    if not rows:
        return pd.DataFrame(columns=RESULT_COLS)
    return pd.DataFrame(rows)


def report_to_frame(report: MatchingReport) -> pd.DataFrame:
    items = [
        ("Students in enrollment", report.total_students_in_enrollment),
        ("Rows in dataset", report.total_rows_in_dataset),
        ("Matched rows", report.matched_rows),
        ("Matched students", report.matched_students),
        ("Unmatched rows", report.unmatched_rows),
        ("  no candidate", report.no_match_rows),
        ("  ambiguous", report.ambiguous_rows),
        ("  insufficient information", report.insufficient_rows),
        ("Duplicate matches", report.duplicate_matches),
        ("Match rate (%)", report.match_rate),
    ]
    items += [(f"Confidence: {band}", n) for band, n in report.confidence]
    if report.cancelled:
        items.append(("Cancelled", "yes"))
    return pd.DataFrame(items, columns=["Metric", "Value"])


def export_match_to_excel_bytes(pairs: MatchedPairs, report: MatchingReport) -> bytes:
    bio = BytesIO()

    summary_df = report_to_frame(report)
    results_df = results_to_frame(pairs)
    matched_df = results_df[results_df["Status"] == "matched"]
    review_df = results_df[results_df["Status"] != "matched"]

    with pd.ExcelWriter(bio, engine="xlsxwriter") as writer:
        summary_df.to_excel(writer, index=False, sheet_name="Summary")
        matched_df.to_excel(writer, index=False, sheet_name="Matched rows")
        review_df.to_excel(writer, index=False, sheet_name="Needs review")

        wb = writer.book

        fmt_header = wb.add_format({"bold": True, "bg_color": "#F2F2F2", "border": 1, "valign": "vcenter"})
        fmt_err = wb.add_format({"border": 1, "valign": "top", "bg_color": "#FCE8E6"})
        fmt_warn = wb.add_format({"border": 1, "valign": "top", "bg_color": "#FEF7E0"})
        fmt_low = wb.add_format({"border": 1, "valign": "top", "bg_color": "#E8F0FE"})

        def format_df_sheet(sheet_name: str, df: pd.DataFrame, default_width: int = 18, max_width: int = 60):
            ws = writer.sheets.get(sheet_name)
            if ws is None:
                return
            ws.freeze_panes(1, 0)
            ws.autofilter(0, 0, max(1, len(df)), max(0, len(df.columns) - 1))
            for col, name in enumerate(df.columns):
                ws.write(0, col, name, fmt_header)
                w = max(10, min(max_width, int(len(str(name)) * 1.2) + 6))
                ws.set_column(col, col, max(default_width, w))

        format_df_sheet("Summary", summary_df, default_width=28, max_width=40)
        format_df_sheet("Matched rows", matched_df)
        format_df_sheet("Needs review", review_df)

        for sheet, df in (("Matched rows", matched_df), ("Needs review", review_df)):
            ws = writer.sheets[sheet]
            cols = list(df.columns)
            # причины и альтернативы - длинные
            for nm, w in [("Name in file", 28), ("Reason", 60), ("Alternatives", 60), ("Warnings", 40)]:
                if nm in cols:
                    ws.set_column(cols.index(nm), cols.index(nm), w)

            if "Band" in cols and len(df):
                j = cols.index("Band")
                last_row = len(df)
                ws.conditional_format(1, j, last_row, j, {
                    "type": "text", "criteria": "containing", "value": "uncertain", "format": fmt_err,
                })
                ws.conditional_format(1, j, last_row, j, {
                    "type": "text", "criteria": "containing", "value": "low", "format": fmt_warn,
                })
                ws.conditional_format(1, j, last_row, j, {
                    "type": "text", "criteria": "containing", "value": "medium", "format": fmt_low,
                })

    return bio.getvalue()
