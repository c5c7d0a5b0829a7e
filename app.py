from __future__ import annotations
import hashlib
import logging
import streamlit as st
import pandas as pd
from linkage.adapters import CANDIDATE_FIELDS, ORIGIN_COL, ROSTER_FIELDS, candidates_from_frame, roster_from_frame
from linkage.batch import match_dataset
from linkage.export import export_match_to_excel_bytes, report_to_frame, results_to_frame
from linkage.ingest import load_table_from_upload
from linkage.models import RosterIndexError, StaleDatasetError
from linkage.params import load_params
from linkage.store import RosterStore

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

PARAMS = load_params()
store = RosterStore()

st.set_page_config(page_title="Student matching", layout="wide")
st.title("Student record matching")
# =========================

# Helpers
# =========================
FIELD_LABELS = {
    "id": "Internal ID (optional)",
    "student_id": "Student ID",
    "student_number": "Student number (district ID)",
    "state_id": "State ID (optional)",
    "first_name": "First name",
    "last_name": "Last name",
    "full_name": "Full name (\"Last, First\" or \"First Last\")",
    "grade": "Grade",
    "teacher": "Teacher / homeroom",
}


def _safe_key_prefix(src_key: str) -> str:
    # безопасный ключ виджетов для любых имён файлов
    return hashlib.md5(src_key.encode("utf-8")).hexdigest()


def _column_picker(df: pd.DataFrame, fields, kp: str) -> dict:
    # колонки выбирает пользователь, движок колонки не угадывает
    cols = [""] + [c for c in df.columns if c != ORIGIN_COL]
    out = {}
    grid = st.columns(3)
    for i, fld in enumerate(fields):
        with grid[i % 3]:
            out[fld] = st.selectbox(FIELD_LABELS.get(fld, fld), cols, index=0, key=f"{kp}__{fld}") or None
    return out
# =========================

# Enrollment (roster)
# =========================
st.subheader("Enrollment roster")
stats = store.enrollment_stats()
c1, c2 = st.columns(2)
with c1:
    st.metric("Enrolled students", stats["total_students"])
with c2:
    st.metric("Roster version", store.roster_version)
if stats["grade_distribution"]:
    st.bar_chart(pd.Series(stats["grade_distribution"]).sort_index())

enroll_file = st.file_uploader("Upload enrollment file (CSV/XLSX)", type=["csv", "xlsx"], key="enroll")
if enroll_file:
    try:
        edf = load_table_from_upload(enroll_file.name, enroll_file.getvalue())
    except ValueError as e:
        st.error(f"Cannot read file: {e}")
        st.stop()

    st.dataframe(edf.head(20), width="stretch")
    ekp = _safe_key_prefix("enroll::" + enroll_file.name)
    emap = _column_picker(edf, ROSTER_FIELDS, ekp)

    st.warning("Replacing the roster invalidates every dataset matched against the current roster.")
    if st.button("Replace roster", key=f"{ekp}__replace"):
        if not emap.get("student_number") or not (emap.get("last_name") and emap.get("first_name")):
            st.error("Student number, first name and last name columns are required.")
        else:
            students = roster_from_frame(edf, emap)
            version = store.replace_roster(students)
            # результаты со старым ростером больше не сохраняются
            for k in ("pairs", "report", "roster_version"):
                st.session_state.pop(k, None)
            st.success(f"Roster v{version}: {len(students)} students.")
            st.rerun()
# =========================

# Dataset matching
# =========================
st.subheader("Match a dataset")
data_file = st.file_uploader("Upload dataset (CSV/XLSX)", type=["csv", "xlsx"], key="dataset")
if not data_file:
    st.stop()

try:
    ddf = load_table_from_upload(data_file.name, data_file.getvalue())
except ValueError as e:
    st.error(f"Cannot read file: {e}")
    st.stop()

st.dataframe(ddf.head(20), width="stretch")
dkp = _safe_key_prefix("dataset::" + data_file.name)
dmap = _column_picker(ddf, CANDIDATE_FIELDS, dkp)
dataset_name = st.text_input("Dataset name", value=data_file.name.rsplit(".", 1)[0], key=f"{dkp}__name")

if st.button("Run matching", key=f"{dkp}__run"):
    roster_version, roster = store.roster_snapshot()
    if not roster:
        st.warning("Enrollment roster is empty: every row will be unmatched.")
    rows = candidates_from_frame(ddf, dmap)
    try:
        pairs, report = match_dataset(rows, roster, PARAMS)
    except RosterIndexError as e:
        st.error(f"Roster is broken, re-upload enrollment: {e}")
        st.stop()
    st.session_state["pairs"] = pairs
    st.session_state["report"] = report
    st.session_state["dataset_name"] = dataset_name
    st.session_state["roster_version"] = roster_version


if st.session_state.get("report") is not None:
    pairs = st.session_state["pairs"]
    report = st.session_state["report"]

    m1, m2, m3, m4 = st.columns(4)
    with m1:
        st.metric("Match rate", f"{report.match_rate}%")
    with m2:
        st.metric("Matched rows", f"{report.matched_rows}/{report.total_rows_in_dataset}")
    with m3:
        st.metric("Ambiguous", report.ambiguous_rows)
    with m4:
        st.metric("Duplicate matches", report.duplicate_matches)

    with st.expander("Report", expanded=False):
        st.dataframe(report_to_frame(report), width="stretch", hide_index=True)

    res_df = results_to_frame(pairs)
    status_opts = ["matched", "ambiguous", "no_match", "insufficient"]
    sel = st.multiselect("Filter by status", status_opts, default=["ambiguous", "no_match", "insufficient"])
    st.dataframe(res_df[res_df["Status"].isin(sel)].head(1000), width="stretch", hide_index=True)

    if report.unmatched_student_names:
        with st.expander(f"Unmatched names ({len(report.unmatched_student_names)})", expanded=False):
            st.write(", ".join(report.unmatched_student_names[:500]))

    b1, b2 = st.columns(2)
    with b1:
        if st.button("Save matched rows"):
            try:
                n = store.save_match(
                    st.session_state["dataset_name"], pairs, report, st.session_state["roster_version"],
                )
            except StaleDatasetError:
                st.error("Roster was replaced after this run. Run matching again before saving.")
            else:
                st.success(f"Saved {n} matched rows; report kept in history.")
    with b2:
        st.download_button(
            "Download Excel report",
            data=export_match_to_excel_bytes(pairs, report),
            file_name="matching_report.xlsx",
            mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        )
