"""Workforce cost aggregation: durations, per-dimension buckets, payroll totals, rankings."""
