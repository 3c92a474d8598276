"""
conftest.py — Shared pytest fixtures for the labour analysis test suite.

All tests are pure unit tests over in-memory record collections; the only
filesystem use is pytest's ``tmp_path`` in the loader tests.
"""

import os
import sys

import pytest

# ---------------------------------------------------------------------------
# Ensure the repository root is importable when the package is not installed.
# ---------------------------------------------------------------------------
_ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _ROOT_DIR not in sys.path:
    sys.path.insert(0, _ROOT_DIR)


# ---------------------------------------------------------------------------
# Cost records
# ---------------------------------------------------------------------------

@pytest.fixture
def cost_records():
    """Three shifts: employee 1 twice, employee 2 once with a day-inclusive duration."""
    return [
        {"employeeId": 1, "date": "2024-01-01", "cost": 100, "duration": "8:00"},
        {"employeeId": 1, "date": "2024-01-02", "cost": 50, "duration": "4:00"},
        {"employeeId": 2, "date": "2024-01-01", "cost": 200, "duration": "1:08:00"},
    ]


@pytest.fixture
def malformed_record():
    return {"employeeId": 3, "date": "2024-01-03", "cost": 30, "duration": "abc"}


@pytest.fixture
def dimensional_records():
    """Records with every dimension populated except one missing department."""
    return [
        {"id": 11, "employeeId": 3, "departmentId": 20, "positionId": 7, "shiftTypeId": 1,
         "date": "2024-02-03T08:00:00", "cost": 90.0, "duration": 6},
        {"id": 12, "employeeId": 1, "departmentId": 10, "positionId": 7, "shiftTypeId": 2,
         "date": "2024-02-01T09:00:00", "cost": 40.0, "duration": "2:30"},
        {"id": 13, "employeeId": 3, "departmentId": None, "positionId": 8, "shiftTypeId": 1,
         "date": "2024-02-01T17:00:00", "cost": 60.0, "duration": "4:00"},
        {"id": 14, "employeeId": 2, "departmentId": 10, "positionId": 8, "shiftTypeId": 2,
         "date": "2024-02-02T08:00:00", "cost": 10.0, "duration": "1:00"},
    ]


# ---------------------------------------------------------------------------
# Payroll
# ---------------------------------------------------------------------------

@pytest.fixture
def payroll_payload():
    """Payroll API payload: 2 shifts, 2 supplements (one without amount), 1 salary."""
    return {
        "shiftsPayroll": [
            {"id": 1, "employeeId": 1, "departmentId": 10, "date": "2024-01-01",
             "salary": 100.0, "shiftDuration": "8:00"},
            {"id": 2, "employeeId": 2, "departmentId": 20, "date": "2024-01-02",
             "salary": 50.5, "shiftDuration": "4:00"},
        ],
        "supplementsPayroll": [
            {"employeeId": 1, "date": "2024-01-01", "salary": 20.0},
            {"employeeId": 3, "date": "2024-01-03"},
        ],
        "salariedPayroll": [
            {"employeeId": 4, "date": "2024-01-01", "salary": 1000.0},
        ],
        "currencySymbol": "kr",
    }
