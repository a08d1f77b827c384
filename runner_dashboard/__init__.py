"""
Runner Log Dashboard v1.0.0

Desktop dashboard for running-log CSV files.  Streams a CSV of
``date, person, miles run`` entries, computes overall and per-person
mileage statistics plus a daily trend series, renders them as charts
and tables, and re-exports the data as CSV or a PDF report.
"""

APP_NAME = "Runner Log Dashboard"
APP_VERSION = "1.0.0"
APP_DATE = "2026-10-17"
__version__ = APP_VERSION
