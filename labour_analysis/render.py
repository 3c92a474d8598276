"""
Markdown rendering for workforce cost summaries.

Everything here takes values produced by ``labour_analysis.analysis`` plus
id -> display-name maps, and returns text. No totals are computed here; the
only arithmetic is rounding for display.
"""

from __future__ import annotations

from typing import Dict, List, Mapping, Optional, Sequence

from .analysis import (
    DEFAULT_TOP_N,
    UNKNOWN_KEY,
    ParseWarning,
    PayrollTotals,
    RankedBucket,
    ShiftOverview,
    Summary,
    inclusive_day_span,
)

DEFAULT_CURRENCY = "$"

CATEGORY_LABELS: Dict[str, str] = {
    "shifts": "Shift Wages",
    "supplements": "Supplements",
    "salaries": "Salaries",
}

CATEGORY_UNITS: Dict[str, str] = {
    "shifts": "shifts",
    "supplements": "items",
    "salaries": "items",
}

DIMENSION_LABELS: Dict[str, str] = {
    "date": "Date",
    "employee": "Employee",
    "department": "Department",
    "position": "Position",
    "shift_type": "Shift Type",
}


# =============================================================================
# HELPERS
# =============================================================================

def fmt_money(val: float, currency: str = DEFAULT_CURRENCY) -> str:
    return f"{currency}{val:,.2f}"

def fmt_pct(val: float) -> str:
    return f"{val:.1f}%"

def fmt_hours(val: float) -> str:
    return f"{val:,.1f}h"

def display_name(key, names: Optional[Mapping] = None, label: str = "Item") -> str:
    """Name from the lookup map, else "<label> <id>"."""
    if key == UNKNOWN_KEY:
        return f"Unknown {label}"
    names = names or {}
    name = names.get(key)
    if name is None and not isinstance(key, str):
        name = names.get(str(key))
    return name if name else f"{label} {key}"


# =============================================================================
# SECTIONS
# =============================================================================

def format_ranked(
    ranked: Sequence[RankedBucket],
    names: Optional[Mapping] = None,
    label: str = "Item",
    currency: str = DEFAULT_CURRENCY,
) -> List[str]:
    lines = []
    for i, item in enumerate(ranked, start=1):
        b = item.bucket
        lines.append(
            f"{i}. **{display_name(b.key, names, label)}**: "
            f"{fmt_money(b.total_cost, currency)} ({fmt_pct(item.percentage)})"
        )
    return lines

def format_warnings(warnings: Sequence[ParseWarning]) -> str:
    if not warnings:
        return ""
    lines = [f"⚠️ **{len(warnings)} value(s) could not be read and were counted as zero**:"]
    for w in warnings:
        lines.append(f"• Record {w.record_id}: {w.field} = {w.raw_value!r}")
    return "\n".join(lines)

def format_cost_summary(
    summary: Summary,
    names: Optional[Mapping] = None,
    *,
    title: str = "Time and Cost Analysis",
    currency: str = DEFAULT_CURRENCY,
    limit: Optional[int] = None,
) -> str:
    """Totals, then the bucket breakdown in emission order, then top contributors."""
    label = DIMENSION_LABELS.get(summary.dimension or "", "Item")
    result = f"💰 **{title}**\n\n"

    if summary.count == 0:
        return result + "No data available for the specified period."

    result += f"💵 **Total Cost:** {fmt_money(summary.total_cost, currency)}\n"
    result += f"⏰ **Total Hours:** {fmt_hours(summary.total_hours)}\n"
    result += f"📋 **Records:** {summary.count}\n\n"

    result += f"📊 **By {label}**:\n"
    for b in summary.buckets:
        result += (
            f"• **{display_name(b.key, names, label)}**: {fmt_money(b.total_cost, currency)} | "
            f"{fmt_hours(b.total_hours)} | {b.count} records | "
            f"{fmt_money(b.rate, currency)}/h\n"
        )

    ranked = summary.rank(limit if limit is not None else DEFAULT_TOP_N)
    if ranked:
        result += "\n🏆 **Top Cost Contributors**:\n"
        result += "\n".join(format_ranked(ranked, names, label, currency)) + "\n"

    warning_text = format_warnings(summary.warnings)
    if warning_text:
        result += "\n" + warning_text + "\n"
    return result.rstrip()

def format_payroll_summary(
    totals: PayrollTotals,
    top_employees: Sequence[RankedBucket],
    employee_names: Optional[Mapping] = None,
    *,
    start_date: str,
    end_date: str,
    currency: str = DEFAULT_CURRENCY,
) -> str:
    day_count = inclusive_day_span(start_date, end_date)

    result = f"💰 Payroll Summary ({start_date} to {end_date})\n\n"
    result += f"📊 **Total Labor Cost**: {fmt_money(totals.grand_total, currency)}\n"
    result += f"👥 **Employees Paid**: {totals.unique_entity_count}\n"
    result += f"📅 **Period**: {day_count} days\n"
    result += f"⏰ **Daily Average**: {fmt_money(totals.per_day_average(day_count), currency)}\n\n"

    result += "💼 **Cost Breakdown**:\n"
    for category, total in totals.category_totals.items():
        label = CATEGORY_LABELS.get(category, category.title())
        unit = CATEGORY_UNITS.get(category, "items")
        count = totals.category_counts.get(category, 0)
        result += f"• **{label}**: {fmt_money(total, currency)} ({count} {unit})\n"

    if top_employees:
        result += "\n👤 **Top Cost Contributors**:\n"
        result += "\n".join(format_ranked(top_employees, employee_names, "Employee", currency)) + "\n"

    warning_text = format_warnings(totals.warnings)
    if warning_text:
        result += "\n" + warning_text + "\n"
    return result.rstrip()

def format_department_breakdown(
    ranked: Sequence[RankedBucket],
    department_names: Optional[Mapping] = None,
    currency: str = DEFAULT_CURRENCY,
) -> str:
    if not ranked:
        return ""
    lines = ["🏢 **Department Cost Summary**:"]
    for i, item in enumerate(ranked, start=1):
        b = item.bucket
        line = (
            f"{i}. **{display_name(b.key, department_names, 'Department')}**: "
            f"{fmt_money(b.total_cost, currency)} ({fmt_pct(item.percentage)})"
        )
        if b.employee_count is not None:
            line += f", {b.employee_count} employees"
        lines.append(line)
    return "\n".join(lines)

def format_shift_overview(overview: ShiftOverview, start_date: str, end_date: str) -> str:
    if overview.shift_count == 0:
        return f"📅 **Shifts ({start_date} to {end_date})**\n\nNo shifts found in the specified date range."

    result = f"📅 **Shifts Overview ({start_date} to {end_date})**\n\n"
    result += "**Summary:**\n"
    result += f"• Total Shifts: {overview.shift_count}\n"
    result += f"• Total Hours: {fmt_hours(overview.total_hours)}\n"
    result += f"• Dates Covered: {overview.dates_covered}\n"
    if overview.status_counts:
        breakdown = ", ".join(f"{status} ({count})" for status, count in overview.status_counts.items())
        result += f"• Status Breakdown: {breakdown}\n"
    return result.rstrip()
