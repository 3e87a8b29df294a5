"""
VITALZONE v1.0 — Personalized Burnout & Readiness Engine

Turns one day of wearable and work-tool telemetry into a burnout score,
a readiness score, a red/yellow/green zone, and an explanation with
recommendations for the person and their manager.

Architecture:
    config          — All thresholds, weights, and window sizes (single source of truth)
    models          — Typed input, intermediate, and output records
    personalization — Baseline + preferences + life events → effective settings
    scoring         — Factor calculators and weighted aggregation
    context         — Day-of-week modulation of work overload
    interactions    — Compounding penalty for simultaneously elevated factors
    fatigue         — Days since last strong recovery → penalty
    calibration     — Self-report check-ins → bounded multiplicative correction
    zones           — Zone classification, transitions, percentile thresholds
    explain         — Ranked factor explanations and recommendations
    prediction      — OLS trajectory forecast
    storage         — SQLite persistence for inputs and daily results
    pipeline        — Orchestration: resolve → score → compound → classify → explain → persist

Public API:
    score_day(inputs)          → pure scoring of one person-day
    run_daily(store, ...)      → score and persist one person-day
    predict_for_person(...)    → trajectory forecast from stored history
    analyze(filepath)          → CLI mode
    analyze_data(payload)      → UI / backend mode
    generate_report(result)    → formatted report
"""

from vitalzone.pipeline import (
    DailyInputs,
    analyze,
    analyze_data,
    generate_report,
    predict_for_person,
    run_daily,
    run_for_people,
    score_day,
)
from vitalzone.storage import SQLiteStore, StorageError

__version__ = "1.0.0"

__all__ = [
    "DailyInputs",
    "SQLiteStore",
    "StorageError",
    "analyze",
    "analyze_data",
    "generate_report",
    "predict_for_person",
    "run_daily",
    "run_for_people",
    "score_day",
]
