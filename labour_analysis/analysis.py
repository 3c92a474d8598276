"""
Workforce Cost Analysis — Durations, Buckets, Totals, Rankings
==============================================================

This module is the computation engine behind the dashboard and the markdown
reports. It receives already-fetched record collections and returns plain
values; it does no I/O and no text formatting.

Core business definitions (IMPORTANT)
------------------------------------
1) COST RECORD = one billable/worked unit (typically one shift cost line).
   - In data: id, employeeId, departmentId, positionId, shiftTypeId, date,
     cost, duration.

2) DURATION = hours worked, normalised from mixed encodings:
   - number     -> already hours
   - "HH:MM"    -> hours + minutes / 60   (minutes 0-59)
   - "D:HH:MM"  -> days * 24 + hours + minutes / 60   (hours 0-23)
     NOTE: upstream docs also describe the two-colon form as HH:MM:SS.
     Existing exports are day-inclusive, so that is the reading used here.
   - anything else -> bare decimal hours, or 0 with a ParseWarning.

3) PAYROLL CATEGORIES = shift wages, supplements, salaried amounts.
   - In data: items carry employeeId, optional departmentId and a salary
     (falling back to cost) amount.

Key lenses
----------
A) Rate ($/hr)  = Total Cost / Total Hours          (0 when no hours)
B) Share (%)    = Bucket Cost / Grand Total × 100   (0 when total <= 0)
C) Average      = Grand Total / units or days       (0 when no units)

Ordering note
-------------
Buckets come out in order of first occurrence in the input. Only the date
dimension is re-sorted (ascending date string) for presentation. Rankings use
a stable sort so equal costs keep their first-occurrence order.
"""

from __future__ import annotations

import logging
import math
import numbers
import re
from decimal import Decimal
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

logger = logging.getLogger("labour-analysis.engine")


# =============================================================================
# CONFIG
# =============================================================================

UNKNOWN_KEY = "unknown"

DEFAULT_TOP_N = 5

# Dimension name -> canonical column
DIMENSIONS: Dict[str, str] = {
    "date": "Date",
    "employee": "Employee_Id",
    "department": "Department_Id",
    "position": "Position_Id",
    "shift_type": "Shift_Type_Id",
}

CHRONOLOGICAL_DIMENSIONS = {"date"}

PAYROLL_CATEGORIES: Tuple[str, ...] = ("shifts", "supplements", "salaries")

# Payroll API payload keys -> category
PAYROLL_PAYLOAD_KEYS: Dict[str, str] = {
    "shiftsPayroll": "shifts",
    "supplementsPayroll": "supplements",
    "salariedPayroll": "salaries",
}

# Raw record field -> canonical key column
KEY_FIELDS: Dict[str, str] = {
    "employeeId": "Employee_Id",
    "departmentId": "Department_Id",
    "positionId": "Position_Id",
    "shiftTypeId": "Shift_Type_Id",
}

CANONICAL_COLUMNS = ["Record_Id", *KEY_FIELDS.values(), "Date", "Cost", "Hours"]

KeyOf = Union[str, Callable[[Mapping[str, Any]], Any]]


# =============================================================================
# HELPERS
# =============================================================================

def _is_absent(x) -> bool:
    """None / NaN / NaT. Blank strings are present (and malformed)."""
    if x is None:
        return True
    if isinstance(x, (str, bytes)):
        return False
    try:
        return bool(pd.isna(x))
    except (TypeError, ValueError):
        return False

def _is_missing(x) -> bool:
    return _is_absent(x) or (isinstance(x, str) and x.strip() == "")

def _as_str(x) -> str:
    return "" if _is_absent(x) else str(x).strip()

def _to_float(x) -> Optional[float]:
    """Strict numeric read; None when the value cannot be interpreted."""
    if isinstance(x, bool):
        return None
    if isinstance(x, (numbers.Real, Decimal)):
        v = float(x)
        return v if math.isfinite(v) else None
    if not isinstance(x, str):
        return None
    # remove currency commas
    s = x.strip().replace("$", "").replace(",", "")
    if s == "":
        return None
    try:
        v = float(s)
    except ValueError:
        return None
    return v if math.isfinite(v) else None

def _as_float(x) -> float:
    if _is_absent(x):
        return 0.0
    v = _to_float(x)
    return 0.0 if v is None else v

def _as_key(x):
    """Grouping key: missing -> UNKNOWN_KEY, 3.0 -> 3, numpy scalars -> python."""
    if _is_missing(x):
        return UNKNOWN_KEY
    if isinstance(x, np.generic):
        x = x.item()
    if isinstance(x, float) and x.is_integer():
        return int(x)
    if isinstance(x, str):
        return x.strip()
    return x

def _date_key(x) -> str:
    """Date part of a date or datetime ("2024-01-01T08:00" or "2024-01-01 08:00" -> "2024-01-01")."""
    if _is_missing(x):
        return UNKNOWN_KEY
    if hasattr(x, "isoformat"):
        x = x.isoformat()
    return re.split(r"[T ]", str(x).strip(), maxsplit=1)[0]

def safe_div(n, d):
    """Vector-safe divide. Supports scalars, numpy arrays, and pandas Series."""
    n_arr = np.asarray(n, dtype="float64")
    d_arr = np.asarray(d, dtype="float64")
    out = np.zeros_like(n_arr, dtype="float64")
    np.divide(n_arr, d_arr, out=out, where=d_arr != 0)
    # Preserve scalar return type when inputs are scalar
    return float(out) if out.shape == () else out

def pct(n, d):
    """Percent = (n/d)*100 with vector-safe divide."""
    return safe_div(n, d) * 100.0

def _as_row_dicts(records) -> List[Dict[str, Any]]:
    if records is None:
        return []
    if isinstance(records, pd.DataFrame):
        return records.to_dict("records")
    return [dict(r) for r in records]


# =============================================================================
# VALUE TYPES
# =============================================================================

@dataclass(frozen=True)
class ParseWarning:
    """A value that could not be read and was counted as zero."""
    record_id: Any
    raw_value: Any
    field: str = "duration"

@dataclass(frozen=True)
class AggregateBucket:
    key: Any
    count: int
    total_cost: float
    total_hours: float
    employee_count: Optional[int] = None

    @property
    def rate(self) -> float:
        """Cost per hour; 0 when the bucket has no hours."""
        return safe_div(self.total_cost, self.total_hours)

@dataclass(frozen=True)
class RankedBucket:
    bucket: AggregateBucket
    percentage: float

@dataclass(frozen=True)
class Summary:
    total_cost: float
    total_hours: float
    count: int
    buckets: Tuple[AggregateBucket, ...]
    warnings: Tuple[ParseWarning, ...] = ()
    dimension: Optional[str] = None

    def rank(self, limit: Optional[int] = None) -> List[RankedBucket]:
        return rank(self.buckets, limit=limit, grand_total=self.total_cost)

    def to_frame(self) -> pd.DataFrame:
        """Bucket table in emission order, for charts and tables."""
        rows = [
            {
                "Key": b.key,
                "Count": b.count,
                "Total_Cost": b.total_cost,
                "Total_Hours": b.total_hours,
                "Rate": b.rate,
            }
            for b in self.buckets
        ]
        out = pd.DataFrame(rows, columns=["Key", "Count", "Total_Cost", "Total_Hours", "Rate"])
        out["Share_Pct"] = np.where(self.total_cost > 0, pct(out["Total_Cost"], self.total_cost), 0.0)
        return out

@dataclass(frozen=True)
class PayrollTotals:
    category_totals: Dict[str, float]
    category_counts: Dict[str, int]
    grand_total: float
    unique_entity_count: int
    warnings: Tuple[ParseWarning, ...] = ()

    def average_per_unit(self, count: int) -> float:
        return safe_div(self.grand_total, count) if count > 0 else 0.0

    def per_day_average(self, total_days: int) -> float:
        return safe_div(self.grand_total, total_days) if total_days > 0 else 0.0

@dataclass(frozen=True)
class ShiftOverview:
    shift_count: int
    total_hours: float
    dates_covered: int
    status_counts: Dict[str, int]


# =============================================================================
# DURATIONS
# =============================================================================

def _duration_hours(value) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (numbers.Real, Decimal)):
        v = float(value)
        return max(v, 0.0) if math.isfinite(v) else None
    if not isinstance(value, str):
        return None

    s = value.strip()
    if s == "":
        return None
    parts = s.split(":")
    try:
        if len(parts) == 1:
            v = float(s)
        elif len(parts) == 2:
            hours, minutes = (float(p) for p in parts)
            if not 0 <= minutes < 60:
                return None
            v = hours + minutes / 60.0
        elif len(parts) == 3:
            # D:HH:MM, not HH:MM:SS
            days, hours, minutes = (float(p) for p in parts)
            if not (0 <= hours < 24 and 0 <= minutes < 60):
                return None
            v = days * 24.0 + hours + minutes / 60.0
        else:
            return None
    except ValueError:
        return None

    if not math.isfinite(v):
        return None
    # end-before-start durations contribute nothing
    return max(v, 0.0)

def parse_duration(value, record_id=None, warnings: Optional[List[ParseWarning]] = None) -> float:
    """
    Normalise a duration of unknown representation into hours.

    Never raises. Unreadable input returns 0.0 and, when a ``warnings`` list is
    given, appends a ParseWarning for ``record_id``.
    """
    hours = _duration_hours(value)
    if hours is None:
        if warnings is not None:
            warnings.append(ParseWarning(record_id=record_id, raw_value=value))
        return 0.0
    return hours


# =============================================================================
# NORMALISATION
# =============================================================================

def normalize_records(records) -> Tuple[pd.DataFrame, List[ParseWarning]]:
    """
    Build the canonical record frame. Inputs are never mutated.

    Defaulting rules: missing cost -> 0, missing duration -> 0 hours (silent).
    A cost or duration that is present but unreadable -> 0 plus a ParseWarning.
    """
    rows = _as_row_dicts(records)
    warnings: List[ParseWarning] = []

    record_ids: List[Any] = []
    costs: List[float] = []
    hours: List[float] = []
    for i, row in enumerate(rows):
        rid = row.get("id")
        rid = i if _is_missing(rid) else _as_key(rid)
        record_ids.append(rid)

        raw_cost = row.get("cost")
        if _is_absent(raw_cost):
            costs.append(0.0)
        else:
            cost = _to_float(raw_cost)
            if cost is None:
                warnings.append(ParseWarning(record_id=rid, raw_value=raw_cost, field="cost"))
                cost = 0.0
            costs.append(cost)

        raw_duration = row.get("duration")
        if _is_absent(raw_duration):
            hours.append(0.0)
        else:
            hours.append(parse_duration(raw_duration, record_id=rid, warnings=warnings))

    data: Dict[str, pd.Series] = {"Record_Id": pd.Series(record_ids, dtype=object)}
    for raw_field, col in KEY_FIELDS.items():
        data[col] = pd.Series([_as_key(r.get(raw_field)) for r in rows], dtype=object)
    data["Date"] = pd.Series([_date_key(r.get("date")) for r in rows], dtype=object)
    data["Cost"] = pd.Series(costs, dtype="float64")
    data["Hours"] = pd.Series(hours, dtype="float64")

    out = pd.DataFrame(data, columns=CANONICAL_COLUMNS)
    if warnings:
        logger.warning("%d value(s) could not be parsed and were counted as zero", len(warnings))
    return out, warnings

def _is_normalized(records) -> bool:
    return isinstance(records, pd.DataFrame) and set(CANONICAL_COLUMNS).issubset(records.columns)

def _prepare(records) -> Tuple[pd.DataFrame, List[ParseWarning], Optional[List[Dict[str, Any]]]]:
    """(frame, warnings, raw rows). Raw rows are None for an already-normalised frame."""
    if _is_normalized(records):
        return records, [], None
    rows = _as_row_dicts(records)
    frame, warnings = normalize_records(rows)
    return frame, warnings, rows


# =============================================================================
# AGGREGATION (one pass per dimension)
# =============================================================================

def _key_series(frame: pd.DataFrame, key_of: KeyOf, rows: Optional[List[Dict[str, Any]]]) -> pd.Series:
    if callable(key_of):
        source = rows if rows is not None else frame.to_dict("records")
        keys = [_as_key(key_of(r)) for r in source]
    else:
        col = DIMENSIONS.get(key_of, key_of)
        if col not in frame.columns:
            raise ValueError(f"Unknown dimension: {key_of!r}")
        keys = list(frame[col])
    return pd.Series(keys, index=frame.index, dtype=object)

def _group(frame: pd.DataFrame, keys: pd.Series, distinct: Optional[str] = None) -> pd.DataFrame:
    cols = ["Key", "Count", "Total_Cost", "Total_Hours"]
    if frame.empty:
        return pd.DataFrame(columns=cols)

    work = frame.assign(_Key=keys)
    # sort=False keeps first-occurrence order of keys
    grouped = work.groupby("_Key", sort=False, dropna=False)
    agg = grouped.agg(Total_Cost=("Cost", "sum"), Total_Hours=("Hours", "sum"))
    agg.insert(0, "Count", grouped.size())
    if distinct:
        agg["Employee_Count"] = grouped[DIMENSIONS.get(distinct, distinct)].nunique()
    return agg.reset_index().rename(columns={"_Key": "Key"})

def _buckets(agg: pd.DataFrame) -> List[AggregateBucket]:
    has_distinct = "Employee_Count" in agg.columns
    return [
        AggregateBucket(
            key=_as_key(row["Key"]),
            count=int(row["Count"]),
            total_cost=float(row["Total_Cost"]),
            total_hours=float(row["Total_Hours"]),
            employee_count=int(row["Employee_Count"]) if has_distinct else None,
        )
        for row in agg.to_dict("records")
    ]

def aggregate(records, key_of: KeyOf, *, distinct: Optional[str] = None) -> List[AggregateBucket]:
    """
    Group records by ``key_of`` and total cost, hours and count per key.

    ``key_of`` is a dimension name (see DIMENSIONS) or a callable. The callable
    receives the raw record mapping, or the canonical row when ``records`` is an
    already-normalised frame. Missing keys fall into the UNKNOWN_KEY bucket.
    ``distinct`` names a dimension whose unique values are counted per bucket.
    """
    frame, _, rows = _prepare(records)
    buckets = _buckets(_group(frame, _key_series(frame, key_of, rows), distinct))
    logger.debug("Aggregated %d records into %d buckets", len(frame), len(buckets))
    return buckets

def _chronological(buckets: Iterable[AggregateBucket]) -> List[AggregateBucket]:
    return sorted(buckets, key=lambda b: (b.key == UNKNOWN_KEY, str(b.key)))

def _summary(frame: pd.DataFrame, warnings: Sequence[ParseWarning], key_of: KeyOf,
             rows: Optional[List[Dict[str, Any]]], dimension: Optional[str]) -> Summary:
    buckets = _buckets(_group(frame, _key_series(frame, key_of, rows)))
    if dimension in CHRONOLOGICAL_DIMENSIONS:
        buckets = _chronological(buckets)
    return Summary(
        total_cost=float(frame["Cost"].sum()),
        total_hours=float(frame["Hours"].sum()),
        count=len(frame),
        buckets=tuple(buckets),
        warnings=tuple(warnings),
        dimension=dimension,
    )

def summarize(records, dimension: KeyOf) -> Summary:
    """Totals plus the per-bucket breakdown for one dimension."""
    frame, warnings, rows = _prepare(records)
    name = dimension if isinstance(dimension, str) else None
    return _summary(frame, warnings, dimension, rows, name)

def summarize_dimensions(records, dimensions: Optional[Sequence[str]] = None) -> Dict[str, Summary]:
    """Normalise once, then run one independent pass per dimension."""
    frame, warnings, rows = _prepare(records)
    dims = list(dimensions) if dimensions is not None else list(DIMENSIONS)
    return {d: _summary(frame, warnings, d, rows, d) for d in dims}


# =============================================================================
# PAYROLL TOTALS (shift wages + supplements + salaries)
# =============================================================================

def payroll_amount(item: Mapping[str, Any]):
    """Raw amount of a payroll item: salary, falling back to cost."""
    amount = item.get("salary")
    return item.get("cost") if _is_absent(amount) else amount

def _payroll_mapping(payroll) -> Dict[str, List[Dict[str, Any]]]:
    out: Dict[str, List[Dict[str, Any]]] = {c: [] for c in PAYROLL_CATEGORIES}
    for key, items in (payroll or {}).items():
        # scalars such as currencySymbol are not categories
        if items is None or isinstance(items, (list, tuple, pd.DataFrame)):
            out[PAYROLL_PAYLOAD_KEYS.get(key, key)] = _as_row_dicts(items)
    return out

def payroll_frame(payroll, cost_of: Optional[Callable[[Mapping[str, Any]], Any]] = None
                  ) -> Tuple[pd.DataFrame, List[ParseWarning]]:
    """Canonical frame over every payroll item, with a Category column."""
    cost_of = cost_of or payroll_amount
    mapping = _payroll_mapping(payroll)

    records: List[Dict[str, Any]] = []
    categories: List[str] = []
    for category, items in mapping.items():
        for item in items:
            records.append({
                "id": item.get("id"),
                "employeeId": item.get("employeeId"),
                "departmentId": item.get("departmentId"),
                "positionId": item.get("positionId"),
                "shiftTypeId": item.get("shiftTypeId"),
                "date": item.get("date", item.get("start")),
                "cost": cost_of(item),
                "duration": item.get("shiftDuration"),
            })
            categories.append(category)

    frame, warnings = normalize_records(records)
    frame["Category"] = pd.Series(categories, dtype=object)
    return frame, warnings

def calculate_payroll_totals(payroll, *, identity_field: str = "employeeId",
                             cost_of: Optional[Callable[[Mapping[str, Any]], Any]] = None) -> PayrollTotals:
    """
    Per-category and grand totals, plus distinct paid entities.

    ``payroll`` maps category -> items (a payroll API payload with
    shiftsPayroll / supplementsPayroll / salariedPayroll is accepted as-is).
    Missing amounts count as 0.
    """
    mapping = _payroll_mapping(payroll)
    frame, warnings = payroll_frame(mapping, cost_of)

    category_totals: Dict[str, float] = {c: 0.0 for c in mapping}
    category_counts: Dict[str, int] = {c: len(items) for c, items in mapping.items()}
    if not frame.empty:
        sums = frame.groupby("Category", sort=False)["Cost"].sum()
        for category, total in sums.items():
            category_totals[category] = float(total)

    entities = {
        _as_key(item.get(identity_field))
        for items in mapping.values()
        for item in items
        if not _is_missing(item.get(identity_field))
    }

    return PayrollTotals(
        category_totals=category_totals,
        category_counts=category_counts,
        grand_total=float(sum(category_totals.values())),
        unique_entity_count=len(entities),
        warnings=tuple(warnings),
    )

def group_payroll_by_employee(payroll) -> List[AggregateBucket]:
    """Employee buckets across all categories (shifts first, then supplements, salaries)."""
    frame, _ = payroll_frame(payroll)
    return aggregate(frame, "employee")

def group_payroll_by_department(payroll) -> List[AggregateBucket]:
    """Shift-wage buckets per department with distinct employee counts."""
    frame, _ = payroll_frame(payroll)
    shifts = frame.loc[frame["Category"] == "shifts"].reset_index(drop=True)
    return aggregate(shifts, "department", distinct="employee")

def inclusive_day_span(start, end) -> int:
    """Days from start to end, both included. Never less than 1."""
    s = pd.to_datetime(start, errors="coerce")
    e = pd.to_datetime(end, errors="coerce")
    if pd.isna(s) or pd.isna(e):
        return 1
    return max(1, int((e.normalize() - s.normalize()).days) + 1)


# =============================================================================
# RANKING
# =============================================================================

def rank(buckets: Iterable[AggregateBucket], limit: Optional[int] = None,
         grand_total: Optional[float] = None) -> List[RankedBucket]:
    """
    Buckets by total cost descending with their share of the grand total.

    Ties keep input order. ``grand_total`` defaults to the sum over all buckets
    (before truncation). Percentages are full precision.
    """
    items = list(buckets)
    total = float(sum(b.total_cost for b in items)) if grand_total is None else float(grand_total)

    ordered = sorted(items, key=lambda b: b.total_cost, reverse=True)
    if limit is not None:
        ordered = ordered[:max(int(limit), 0)]

    return [
        RankedBucket(bucket=b, percentage=pct(b.total_cost, total) if total > 0 else 0.0)
        for b in ordered
    ]


# =============================================================================
# SHIFT OVERVIEW
# =============================================================================

def summarize_shifts(shifts) -> ShiftOverview:
    """Shift count, hours (durations are in minutes), dates covered, status breakdown."""
    rows = _as_row_dicts(shifts)

    minutes = [max(_as_float(r.get("duration")), 0.0) for r in rows]
    dates = {
        _date_key(r.get("start_time", r.get("startDateTime")))
        for r in rows
    }
    dates.discard(UNKNOWN_KEY)

    status_counts: Dict[str, int] = {}
    for r in rows:
        status = _as_str(r.get("status")) or UNKNOWN_KEY
        status_counts[status] = status_counts.get(status, 0) + 1

    return ShiftOverview(
        shift_count=len(rows),
        total_hours=sum(minutes) / 60.0,
        dates_covered=len(dates),
        status_counts=status_counts,
    )
