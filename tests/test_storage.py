from __future__ import annotations

import tempfile
from dataclasses import replace
from datetime import date, timedelta
from pathlib import Path

from vitalzone.config import ThresholdConfig, ThresholdOverride
from vitalzone.models import (
    Baseline,
    Explanation,
    FeelingCheckin,
    HealthSample,
    LifeEvent,
    PersonalPreferences,
    Recommendations,
    ScoringResult,
    WorkSample,
    Zone,
)
from vitalzone.storage import SQLiteStore, StorageError

DAY = date(2026, 10, 14)


def result(day=DAY, burnout=40.0, zone=Zone.YELLOW, previous=Zone.YELLOW):
    return ScoringResult(
        person_id="p1",
        day=day,
        burnout_score=burnout,
        readiness_score=55.0,
        zone=zone,
        previous_zone=previous,
        explanation=Explanation(factors=(), recommendations=Recommendations(personal=("Rest",))),
    )


def test_upsert_is_idempotent() -> None:
    with tempfile.TemporaryDirectory() as tmp:
        store = SQLiteStore(Path(tmp) / "vz.db")
        store.upsert_scoring_result(result())
        store.upsert_scoring_result(result())
        assert store.scoring_row_count("p1") == 1

        store.upsert_scoring_result(result(burnout=72.0, zone=Zone.RED))
        assert store.scoring_row_count("p1") == 1
        history = store.scoring_history("p1")
        assert history["burnout_score"].tolist() == [72.0]
        assert history["zone_changed"].tolist() == [True]
        assert store.load_explanation("p1", DAY)["recommendations"]["personal"] == ["Rest"]


def test_history_and_previous_zone() -> None:
    with tempfile.TemporaryDirectory() as tmp:
        store = SQLiteStore(Path(tmp) / "vz.db")
        store.upsert_scoring_result(result(day=date(2026, 10, 12), zone=Zone.GREEN))
        store.upsert_scoring_result(result(day=date(2026, 10, 13), zone=Zone.RED))
        store.upsert_scoring_result(result(day=DAY))

        assert store.previous_zone("p1", DAY) is Zone.RED
        assert store.previous_zone("p1", date(2026, 10, 12)) is None
        before = store.scoring_history("p1", before=DAY)
        assert before["date"].tolist() == [date(2026, 10, 12), date(2026, 10, 13)]
        assert store.scoring_history("nobody").empty


def test_latest_samples_on_or_before_day() -> None:
    with tempfile.TemporaryDirectory() as tmp:
        store = SQLiteStore(Path(tmp) / "vz.db")
        store.save_health("p1", HealthSample(day=date(2026, 10, 12), sleep_hours=6.0))
        store.save_health("p1", HealthSample(day=date(2026, 10, 15), sleep_hours=9.0))
        store.save_work("p1", WorkSample(day=DAY, hours_worked=9.5, meetings_attended=4))

        assert store.latest_health("p1", DAY).sleep_hours == 6.0
        work = store.latest_work("p1", DAY)
        assert work.hours_worked == 9.5
        assert work.meetings_attended == 4
        assert work.overtime_hours is None
        assert store.latest_health("p2", DAY) is None


def test_personalization_records() -> None:
    with tempfile.TemporaryDirectory() as tmp:
        store = SQLiteStore(Path(tmp) / "vz.db")
        store.save_baseline("p1", Baseline(sleep_hours=7.5, hrv=50))
        store.save_baseline("p1", Baseline(sleep_hours=7.0, hrv=52))
        prefs = PersonalPreferences(ideal_sleep_hours=8, chronotype="night_owl", weight_sleep=70)
        store.save_preferences("p1", prefs)

        assert store.load_baseline("p1") == Baseline(sleep_hours=7.0, hrv=52)
        assert store.load_preferences("p1") == prefs
        assert store.load_baseline("p2") is None
        assert store.load_preferences("p2") is None


def test_active_life_events_window() -> None:
    with tempfile.TemporaryDirectory() as tmp:
        store = SQLiteStore(Path(tmp) / "vz.db")
        store.add_life_event("p1", LifeEvent("Launch", date(2026, 10, 1), date(2026, 10, 20), sleep_adjustment=-10))
        store.add_life_event("p1", LifeEvent("Old move", date(2026, 9, 1), date(2026, 9, 10)))
        store.add_life_event("p1", LifeEvent("Paused", date(2026, 10, 1), is_active=False))
        store.add_life_event("p1", LifeEvent("Newborn", date(2026, 10, 10)))

        labels = {e.label for e in store.active_life_events("p1", DAY)}
        assert labels == {"Launch", "Newborn"}


def test_recent_checkins_window() -> None:
    with tempfile.TemporaryDirectory() as tmp:
        store = SQLiteStore(Path(tmp) / "vz.db")
        store.add_checkin("p1", FeelingCheckin(date(2026, 9, 30), 3))
        store.add_checkin("p1", FeelingCheckin(date(2026, 10, 1), 2, 4, 55.0))
        store.add_checkin("p1", FeelingCheckin(DAY, 4))

        recent = store.recent_checkins("p1", DAY, 14)
        assert [c.day for c in recent] == [DAY, date(2026, 10, 1)]
        assert recent[1].burnout_score_at_checkin == 55.0


def test_threshold_precedence() -> None:
    with tempfile.TemporaryDirectory() as tmp:
        store = SQLiteStore(Path(tmp) / "vz.db")
        assert store.thresholds_for("p1", None, DAY) == ThresholdConfig()

        store.save_organization_thresholds(None, ThresholdConfig(burnout_red=75.0))
        store.save_organization_thresholds("acme", ThresholdConfig(burnout_red=65.0))
        assert store.thresholds_for("p1", None, DAY).burnout_red == 75.0
        assert store.thresholds_for("p1", "other", DAY).burnout_red == 75.0
        assert store.thresholds_for("p1", "acme", DAY).burnout_red == 65.0

        store.add_threshold_override(
            "p1", ThresholdOverride(burnout_red=80.0, reason="recovering"),
            start_date=date(2026, 10, 1), end_date=date(2026, 10, 31),
        )
        resolved = store.thresholds_for("p1", "acme", DAY)
        assert resolved == replace(ThresholdConfig(burnout_red=80.0), override_reason="recovering")
        assert store.thresholds_for("p1", "acme", date(2026, 11, 5)).burnout_red == 65.0


def test_percentile_thresholds_follow_recent_organization_scores() -> None:
    with tempfile.TemporaryDirectory() as tmp:
        store = SQLiteStore(Path(tmp) / "vz.db")
        store.save_organization_thresholds("acme", ThresholdConfig(threshold_type="percentile"))

        for i in range(1, 10):
            row = replace(result(day=DAY - timedelta(days=i), burnout=i * 10.0),
                          person_id=f"p{i}", readiness_score=100.0 - i * 5)
            store.upsert_scoring_result(row, "acme")
        # Rows the 30-day window must ignore
        store.upsert_scoring_result(replace(result(day=DAY - timedelta(days=45)), person_id="old"), "acme")
        store.upsert_scoring_result(replace(result(day=DAY - timedelta(days=1)), person_id="x"), "other")
        store.upsert_scoring_result(replace(result(day=DAY), person_id="today"), "acme")

        # Nine samples is not enough; the configured cutoffs stand
        assert store.thresholds_for("p1", "acme", DAY) == ThresholdConfig(threshold_type="percentile")

        store.upsert_scoring_result(
            replace(result(day=DAY - timedelta(days=10), burnout=100.0), person_id="p10", readiness_score=50.0),
            "acme",
        )
        resolved = store.thresholds_for("p1", "acme", DAY)
        assert resolved.burnout_red == 80.0
        assert resolved.readiness_green == 85.0
        assert store.organization_scores("acme", DAY).shape[0] == 10

        store.add_threshold_override("p1", ThresholdOverride(burnout_red=90.0), start_date=DAY)
        overridden = store.thresholds_for("p1", "acme", DAY)
        assert overridden.burnout_red == 90.0
        assert overridden.readiness_green == 85.0
        assert store.thresholds_for("p2", "acme", DAY).burnout_red == 80.0


def test_unwritable_location_raises_storage_error() -> None:
    with tempfile.TemporaryDirectory() as tmp:
        # A directory cannot be opened as a database file
        blocker = Path(tmp) / "db_as_dir"
        blocker.mkdir()
        try:
            SQLiteStore(blocker)
            raise RuntimeError("Should have raised StorageError")
        except StorageError as exc:
            assert exc.operation == "init schema"
