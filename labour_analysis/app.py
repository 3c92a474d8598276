"""
Workforce Cost Dashboard
========================
Streamlit app for exploring shift costs and payroll by dimension.

Structure:
1. Overall KPIs
2. Breakdown by the selected dimension (chart + table)
3. Top cost contributors
4. Payroll summary (optional payroll upload)
5. Values that could not be read
"""

import streamlit as st
import pandas as pd
import altair as alt

from labour_analysis.analysis import (
    DEFAULT_TOP_N, DIMENSIONS,
    summarize_dimensions, calculate_payroll_totals, safe_div,
    group_payroll_by_employee, group_payroll_by_department, rank,
)
from labour_analysis.etl import load_records, load_payroll, load_name_map
from labour_analysis.logging_config import setup_logging
from labour_analysis.render import (
    DIMENSION_LABELS, display_name, fmt_hours, fmt_money, fmt_pct,
    format_payroll_summary, format_department_breakdown,
)

# =============================================================================
# PAGE CONFIGURATION
# =============================================================================

st.set_page_config(
    page_title="Workforce Cost Analysis",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="expanded"
)

setup_logging()

UPLOAD_TYPES = ["xlsx", "xls", "csv", "json"]

NAME_MAP_DIMENSIONS = {
    "employee": "Employee names",
    "department": "Department names",
    "position": "Position names",
    "shift_type": "Shift type names",
}


# =============================================================================
# DATA LOADING (CACHED)
# =============================================================================

@st.cache_data
def load_cost_records(source):
    return load_records(source)


@st.cache_data
def load_payroll_items(source):
    return load_payroll(source)


def sidebar_name_maps():
    """Optional id -> name uploads, one per dimension."""
    names = {}
    with st.sidebar.expander("🏷️ Display Names", expanded=False):
        for dim, label in NAME_MAP_DIMENSIONS.items():
            upload = st.file_uploader(label, type=UPLOAD_TYPES, key=f"names_{dim}")
            if upload:
                try:
                    names[dim] = load_name_map(upload)
                except ValueError as e:
                    st.error(f"{label}: {e}")
    return names


# =============================================================================
# MAIN APPLICATION
# =============================================================================

def main():
    st.title("💰 Workforce Cost Analysis")
    st.markdown("*Shift costs and payroll by date, employee, department, position and shift type*")

    # -------------------------------------------------------------------------
    # SIDEBAR: DATA & FILTERS
    # -------------------------------------------------------------------------
    st.sidebar.header("📁 Data Source")
    uploaded = st.sidebar.file_uploader("Upload cost records", type=UPLOAD_TYPES)
    payroll_upload = st.sidebar.file_uploader("Upload payroll (optional)", type=["xlsx", "xls", "json"])
    names = sidebar_name_maps()

    if not uploaded:
        st.warning("⚠️ Upload a cost record export to begin")
        st.stop()

    try:
        with st.spinner("Loading data..."):
            records = load_cost_records(uploaded)
        st.sidebar.success(f"✅ {len(records):,} records loaded")
    except ValueError as e:
        st.error(f"Error: {e}")
        st.stop()

    st.sidebar.header("🎛️ Options")
    dimension = st.sidebar.selectbox(
        "Group by", list(DIMENSIONS), format_func=lambda d: DIMENSION_LABELS.get(d, d)
    )
    top_n = st.sidebar.slider("Top contributors", 1, 20, DEFAULT_TOP_N)

    summaries = summarize_dimensions(records)
    summary = summaries[dimension]
    label = DIMENSION_LABELS.get(dimension, dimension)
    dim_names = names.get(dimension, {})

    # =========================================================================
    # SECTION 0: OVERALL KPIs
    # =========================================================================
    st.subheader("📈 Overall")
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Total Cost", fmt_money(summary.total_cost))
    c2.metric("Total Hours", fmt_hours(summary.total_hours))
    c3.metric("Records", f"{summary.count:,}")
    c4.metric("Avg Rate", fmt_money(safe_div(summary.total_cost, summary.total_hours)) + "/h")

    if summary.count == 0:
        st.info("No records in the uploaded file.")
        st.stop()

    st.markdown("---")

    # =========================================================================
    # SECTION 1: BREAKDOWN
    # =========================================================================
    st.header(f"📊 Breakdown by {label}")

    table = summary.to_frame()
    table["Name"] = [display_name(k, dim_names, label) for k in table["Key"]]

    chart = alt.Chart(table).mark_bar().encode(
        x=alt.X("Total_Cost:Q", title="Cost"),
        y=alt.Y("Name:N", title="", sort=None if dimension == "date" else "-x"),
        tooltip=["Name", alt.Tooltip("Total_Cost:Q", format="$,.2f", title="Cost"),
                 alt.Tooltip("Total_Hours:Q", format=",.1f", title="Hours"),
                 alt.Tooltip("Share_Pct:Q", format=".1f", title="Share %"), "Count"]
    ).properties(height=max(200, 24 * len(table)))
    st.altair_chart(chart, use_container_width=True)

    with st.expander(f"📋 {label} Table", expanded=False):
        disp = table[["Name", "Count", "Total_Cost", "Total_Hours", "Rate", "Share_Pct"]]
        st.dataframe(disp.style.format({
            "Total_Cost": "${:,.2f}", "Total_Hours": "{:,.1f}",
            "Rate": "${:,.2f}", "Share_Pct": "{:.1f}%",
        }), use_container_width=True, hide_index=True)

    # =========================================================================
    # SECTION 2: TOP CONTRIBUTORS
    # =========================================================================
    st.header("🏆 Top Cost Contributors")
    ranked = summary.rank(top_n)
    top = pd.DataFrame([
        {
            "Rank": i,
            "Name": display_name(r.bucket.key, dim_names, label),
            "Cost": fmt_money(r.bucket.total_cost),
            "Share": fmt_pct(r.percentage),
        }
        for i, r in enumerate(ranked, start=1)
    ])
    st.dataframe(top, use_container_width=True, hide_index=True)

    # =========================================================================
    # SECTION 3: PAYROLL
    # =========================================================================
    if payroll_upload:
        st.markdown("---")
        st.header("💼 Payroll")
        try:
            payroll = load_payroll_items(payroll_upload)
        except ValueError as e:
            st.error(f"Error: {e}")
            st.stop()

        col1, col2 = st.columns(2)
        start_date = col1.date_input("Period start")
        end_date = col2.date_input("Period end")

        totals = calculate_payroll_totals(payroll)
        currency = payroll.get("currencySymbol", "$")
        top_employees = rank(group_payroll_by_employee(payroll), limit=top_n, grand_total=totals.grand_total)
        departments = rank(group_payroll_by_department(payroll), grand_total=totals.grand_total)

        st.markdown(format_payroll_summary(
            totals, top_employees, names.get("employee"),
            start_date=str(start_date), end_date=str(end_date), currency=currency,
        ))
        dept_text = format_department_breakdown(departments, names.get("department"), currency)
        if dept_text:
            st.markdown(dept_text)

    # =========================================================================
    # SECTION 4: WARNINGS
    # =========================================================================
    if summary.warnings:
        with st.expander(f"⚠️ {len(summary.warnings)} value(s) counted as zero", expanded=False):
            st.dataframe(pd.DataFrame([
                {"Record": str(w.record_id), "Field": w.field, "Raw Value": str(w.raw_value)}
                for w in summary.warnings
            ]), use_container_width=True, hide_index=True)


if __name__ == "__main__":
    main()
