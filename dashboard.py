# dashboard.py
# PDF Whitespace Audit — how blank is each scan in a folder?
# Runs the same batch pipeline as whitespace_batch.py on a folder or on uploaded PDFs.
#
# Requirements:
#   pip install streamlit pymupdf numpy pandas

import math
import tempfile
import time
from pathlib import Path

import streamlit as st

from pdf_whitespace import WhitespaceError
from whitespace_batch import DEFAULT_CONCURRENCY, RunConfig, report_csv, run, stats_frame

# ---------- Detection defaults ----------
DEFAULT_DPI_FAST = 200
DEFAULT_DPI_ACCURATE = 300
SOURCE_FOLDER = "Folder on disk"
SOURCE_UPLOAD = "Upload PDFs"


# ---------- Helpers ----------
def unique_upload_name(name: str, taken) -> str:
    # keep base names only; uploads never escape the scratch dir
    base = Path(name).name
    candidate, n = base, 1
    while candidate in taken:
        n += 1
        candidate = f"{Path(base).stem} ({n}){Path(base).suffix}"
    return candidate


def save_uploads(files, target: Path):
    """Write uploads into target, suffixing repeated names with " (n)". Returns the names used."""
    names = []
    for f in files:
        name = unique_upload_name(f.name, names)
        (target / name).write_bytes(f.getvalue())
        names.append(name)
    return names


def run_audit(config: RunConfig):
    t0 = time.perf_counter()
    result = run(config)
    return result, time.perf_counter() - t0


def overall_white_pct(stats) -> float:
    total = sum(s.total_pixels for s in stats)
    if total == 0:
        return math.nan
    return 100.0 * sum(s.white_pixels for s in stats) / total


def format_pct(x: float) -> str:
    return "NaN" if math.isnan(x) else f"{x:.2f}%"


def show_result(result, elapsed: float):
    if not result.stats:
        st.info("No results to display as no PDFs were processed.")
    else:
        k1, k2, k3, k4 = st.columns(4)
        k1.metric("Documents", f"{len(result.stats)}")
        k2.metric("Pages", f"{sum(s.pages for s in result.stats)}")
        k3.metric("White (overall)", format_pct(overall_white_pct(result.stats)))
        k4.metric("Time", f"{elapsed:.2f} s")

        show = stats_frame(result.stats).sort_values("Name").reset_index(drop=True)
        show["Percentage White Pixels"] = show["Percentage White Pixels"].map(format_pct)
        st.markdown("#### Per-document breakdown")
        st.dataframe(show, use_container_width=True)

        st.download_button("Download CSV", report_csv(result.stats),
                           file_name="whitespace.csv", mime="text/csv")

    if result.skipped:
        st.warning(f"Skipped {len(result.skipped)} PDF(s):")
        for path, reason in result.skipped:
            st.write("•", f"{Path(path).name}: {reason}")


# ---------- UI ----------
st.set_page_config(page_title="PDF Whitespace Audit", page_icon="📄", layout="wide")
st.title("📄 PDF Whitespace Audit")

with st.sidebar:
    st.subheader("Source")
    source_mode = st.radio("PDFs from", [SOURCE_FOLDER, SOURCE_UPLOAD], index=0)

    st.subheader("Analysis")
    mode = st.radio("Mode", ["Fast", "Accurate"], index=0, help="Fast = 200 DPI, Accurate = 300 DPI")
    dpi = DEFAULT_DPI_FAST if mode == "Fast" else DEFAULT_DPI_ACCURATE
    workers = st.number_input("Workers", min_value=1, max_value=32, value=DEFAULT_CONCURRENCY, step=1)

    with st.expander("Advanced detection"):
        strict_white = st.checkbox("Strict white (check R, G and B)", value=False,
                                   help="Off: a pixel is white when its red channel is saturated")
        skip_errors = st.checkbox("Skip PDFs that fail to open or render", value=False)

options = dict(concurrency=int(workers), dpi=dpi, strict_white=strict_white, skip_errors=skip_errors)

if source_mode == SOURCE_FOLDER:
    folder = st.text_input("Folder (or single PDF) path", value="")
    if folder and st.button("Analyze"):
        try:
            with st.spinner("Analyzing PDFs…"):
                result, elapsed = run_audit(RunConfig(source=folder, **options))
        except WhitespaceError as exc:
            st.error(str(exc))
        else:
            show_result(result, elapsed)
    else:
        st.info("Enter a folder of PDFs (or a single PDF path) and press Analyze.")
else:
    uploaded = st.file_uploader("Drag & drop PDFs", type=["pdf"], accept_multiple_files=True)
    if uploaded:
        try:
            with tempfile.TemporaryDirectory(prefix="pdf-whitespace-") as scratch:
                save_uploads(uploaded, Path(scratch))
                with st.spinner("Analyzing PDFs…"):
                    result, elapsed = run_audit(RunConfig(source=scratch, **options))
        except WhitespaceError as exc:
            st.error(str(exc))
        else:
            show_result(result, elapsed)
    else:
        st.info("Upload one or more PDFs to begin.")
