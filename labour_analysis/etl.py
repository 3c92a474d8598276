import json
import logging
from datetime import time, timedelta
from pathlib import Path

import pandas as pd

logger = logging.getLogger("labour-analysis.etl")

# Export header -> record field
RECORD_COLUMNS = {
    'Shift Id': 'id',
    'Shift ID': 'id',
    'Employee Id': 'employeeId',
    'Employee ID': 'employeeId',
    'Department Id': 'departmentId',
    'Department ID': 'departmentId',
    'Position Id': 'positionId',
    'Position ID': 'positionId',
    'Shift Type Id': 'shiftTypeId',
    'Shift Type ID': 'shiftTypeId',
    'Date': 'date',
    'Cost': 'cost',
    'Duration': 'duration',
    'Salary': 'salary',
    'Shift Duration': 'shiftDuration',
}

DURATION_COLUMNS = ('duration', 'shiftDuration')

PAYROLL_SHEETS = {
    'Shifts': 'shifts',
    'Supplements': 'supplements',
    'Salaries': 'salaries',
}

# JSON payload key -> category
PAYROLL_KEYS = {
    'shiftsPayroll': 'shifts',
    'supplementsPayroll': 'supplements',
    'salariedPayroll': 'salaries',
}


def _suffix(source):
    """File suffix for a path or an uploaded file object."""
    return Path(str(getattr(source, 'name', source))).suffix.lower()


def _excel_hours(v):
    """Excel time-formatted cells come back as time/timedelta; read them as hours."""
    if isinstance(v, time):
        return v.hour + v.minute / 60 + v.second / 3600
    if isinstance(v, timedelta):
        return v.total_seconds() / 3600
    return v


def _frame_to_records(df):
    """DataFrame -> list of dicts with export headers renamed and NaN as None."""
    df = df.rename(columns=RECORD_COLUMNS)
    for col in DURATION_COLUMNS:
        if col in df.columns:
            df[col] = df[col].map(_excel_hours)
    df = df.astype(object).where(df.notna(), None)
    return df.to_dict('records')


def _read_json(source):
    try:
        if hasattr(source, 'read'):
            return json.load(source)
        with open(source, encoding='utf-8') as fh:
            return json.load(fh)
    except (OSError, json.JSONDecodeError) as e:
        raise ValueError(f"Invalid JSON file: {e}")


def load_records(source):
    """
    Reads an exported cost-record file (.xlsx/.xls, .csv or .json).

    Returns:
        records (list[dict]): API-shaped records (employeeId, date, cost, duration, ...).
    """
    suffix = _suffix(source)

    if suffix == '.json':
        data = _read_json(source)
        # Time & cost payloads wrap the rows in "costs"
        if isinstance(data, dict):
            data = data.get('costs', [])
        if not isinstance(data, list):
            raise ValueError("JSON export must be a list of records or an object with a 'costs' list")
        records = [dict(r) for r in data]
        for r in records:
            if r.get('id') is None and 'shiftId' in r:
                r['id'] = r['shiftId']
    elif suffix == '.csv':
        try:
            df = pd.read_csv(source)
        except Exception as e:
            raise ValueError(f"Invalid CSV file: {e}")
        records = _frame_to_records(df)
    elif suffix in ('.xlsx', '.xls'):
        try:
            df = pd.read_excel(source)
        except Exception as e:
            raise ValueError(f"Invalid Excel file: {e}")
        records = _frame_to_records(df)
    else:
        raise ValueError(f"Unsupported file type: {suffix or 'unknown'}")

    logger.info("Loaded %d records", len(records))
    return records


def load_payroll(source):
    """
    Reads payroll line items into {category: [items]}.

    Excel workbooks use one sheet per category (Shifts, Supplements, Salaries);
    a missing sheet becomes an empty category. JSON files hold the payroll
    payload (shiftsPayroll, supplementsPayroll, salariedPayroll, currencySymbol).
    """
    payroll = {category: [] for category in PAYROLL_SHEETS.values()}

    if _suffix(source) == '.json':
        data = _read_json(source)
        if not isinstance(data, dict):
            raise ValueError("Payroll JSON must be an object")
        for key, category in PAYROLL_KEYS.items():
            payroll[category] = [dict(r) for r in (data.get(key) or [])]
        if data.get('currencySymbol'):
            payroll['currencySymbol'] = data['currencySymbol']
        return payroll

    try:
        xls = pd.ExcelFile(source)
    except Exception as e:
        raise ValueError(f"Invalid Excel file: {e}")

    missing_sheets = [s for s in PAYROLL_SHEETS if s not in xls.sheet_names]
    if missing_sheets:
        logger.info("Payroll workbook has no sheet(s): %s", ', '.join(missing_sheets))

    for sheet, category in PAYROLL_SHEETS.items():
        if sheet in xls.sheet_names:
            payroll[category] = _frame_to_records(pd.read_excel(xls, sheet))
    return payroll


def load_name_map(source, id_col='id', name_col='name'):
    """Builds an id -> display-name map from a two-column export."""
    suffix = _suffix(source)
    if suffix == '.json':
        rows = _read_json(source)
        if not isinstance(rows, list):
            raise ValueError("Name map JSON must be a list of objects")
        df = pd.DataFrame(rows)
    elif suffix == '.csv':
        df = pd.read_csv(source)
    elif suffix in ('.xlsx', '.xls'):
        df = pd.read_excel(source)
    else:
        raise ValueError(f"Unsupported file type: {suffix or 'unknown'}")

    missing = [c for c in (id_col, name_col) if c not in df.columns]
    if missing:
        raise ValueError(f"Missing required columns: {', '.join(missing)}")

    df = df.dropna(subset=[id_col])
    return {
        (int(k) if isinstance(k, float) and k.is_integer() else k): str(v).strip()
        for k, v in zip(df[id_col].tolist(), df[name_col].tolist())
        if pd.notna(v)
    }
