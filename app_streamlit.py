# app_streamlit.py
import streamlit as st

from recon_core import ReconConfig, compare_files
from recon_excel import export_result
from recon_report import format_report, to_frame

st.set_page_config(page_title="CSV Reconciler", layout="wide")

st.title("🔍 CSV Reconcile by Key")

left_file = st.file_uploader("Upload File 1 (CSV/XLSX)", type=["csv", "txt", "xlsx"], key="f1")
right_file = st.file_uploader("Upload File 2 (CSV/XLSX)", type=["csv", "txt", "xlsx"], key="f2")

keys_text = st.text_input("Key columns (comma-separated)", value="", key="keys")
ignore_text = st.text_input("Ignore columns (comma-separated)", value="", key="ignore")

with st.expander("⚙️ Display options"):
    col1, col2 = st.columns(2)
    with col1:
        max_rows = st.number_input("Max rows", min_value=0, value=20, step=1)
        no_truncate = st.checkbox("Show all differences (no truncation)", value=False)
    with col2:
        max_cell_width = st.number_input("Max cell width", min_value=0, value=30, step=1)

key_columns = [c.strip() for c in keys_text.split(",") if c.strip()]
ignore_columns = [c.strip() for c in ignore_text.split(",") if c.strip()]

run = st.button("Compare")

if run:
    if not left_file or not right_file:
        st.warning("Please upload both files.")
    elif not key_columns:
        st.warning("Please enter at least one key column.")
    else:
        cfg = ReconConfig(
            key_columns=key_columns,
            ignore_columns=ignore_columns,
            max_rows=int(max_rows),
            max_cell_width=int(max_cell_width),
            no_truncate=no_truncate,
        )
        with st.spinner("Processing..."):
            try:
                result = compare_files(left_file, right_file, cfg)
            except ValueError as e:
                st.error(f"Error: {e}")
                st.stop()

        counts = result.counts()
        if result.header_mismatch:
            st.info("Headers differ between the files; columns are compared by name.")

        m1, m2, m3, m4 = st.columns(4)
        m1.metric("Total differences", counts["total"])
        m2.metric("Value mismatches", counts["cell_mismatches"] + counts["column_differences"])
        m3.metric("Only in file 1", counts["only_in_file1"])
        m4.metric("Only in file 2", counts["only_in_file2"])

        view = format_report(result.diffs, cfg.max_rows, cfg.max_cell_width, cfg.no_truncate)
        if view.empty:
            st.success("No differences found.")
        else:
            st.dataframe(to_frame(view), use_container_width=True)
            for line in view.summary:
                st.caption(line)

        st.download_button(
            label="📥 Download Excel (recon_output.xlsx)",
            data=export_result(result, cfg.key_columns),
            file_name="recon_output.xlsx",
            mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        )
