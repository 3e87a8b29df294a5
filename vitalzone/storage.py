"""
SQLite persistence for engine inputs and the daily scoring result.

The engine reads a handful of independent records per person and writes a
single row per (person, day). The write is an idempotent upsert.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from contextlib import contextmanager
from dataclasses import replace
from datetime import date, timedelta
from pathlib import Path
from typing import Any, Iterator, Optional

import pandas as pd

from vitalzone.config import ThresholdConfig, ThresholdOverride, resolve_thresholds
from vitalzone.models import (
    Baseline,
    FeelingCheckin,
    HealthSample,
    LifeEvent,
    PersonalPreferences,
    ScoringResult,
    WorkSample,
    Zone,
)
from vitalzone.zones import percentile_thresholds

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS health_samples (
    person_id TEXT NOT NULL,
    date TEXT NOT NULL,
    sleep_hours REAL,
    sleep_quality REAL,
    deep_sleep_hours REAL,
    rem_sleep_hours REAL,
    core_sleep_hours REAL,
    awake_hours REAL,
    resting_hr REAL,
    hrv REAL,
    exercise_minutes REAL,
    recovery_score REAL,
    PRIMARY KEY (person_id, date)
);

CREATE TABLE IF NOT EXISTS work_samples (
    person_id TEXT NOT NULL,
    date TEXT NOT NULL,
    hours_worked REAL,
    overtime_hours REAL,
    meetings_attended INTEGER,
    meeting_hours REAL,
    tasks_assigned INTEGER,
    tasks_completed INTEGER,
    emails_sent INTEGER,
    PRIMARY KEY (person_id, date)
);

CREATE TABLE IF NOT EXISTS baselines (
    person_id TEXT PRIMARY KEY,
    sleep_hours REAL,
    sleep_quality REAL,
    hrv REAL,
    resting_hr REAL,
    hours_worked REAL
);

CREATE TABLE IF NOT EXISTS personal_preferences (
    person_id TEXT PRIMARY KEY,
    payload TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS life_events (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    person_id TEXT NOT NULL,
    event_type TEXT NOT NULL,
    label TEXT NOT NULL,
    start_date TEXT NOT NULL,
    end_date TEXT,
    sleep_adjustment REAL DEFAULT 0,
    work_adjustment REAL DEFAULT 0,
    exercise_adjustment REAL DEFAULT 0,
    stress_tolerance_adjustment REAL DEFAULT 0,
    is_active INTEGER DEFAULT 1
);

CREATE INDEX IF NOT EXISTS idx_life_events_person
ON life_events(person_id, is_active, start_date);

CREATE TABLE IF NOT EXISTS feeling_checkins (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    person_id TEXT NOT NULL,
    date TEXT NOT NULL,
    overall_feeling REAL NOT NULL,
    stress_level REAL,
    burnout_score_at_checkin REAL
);

CREATE INDEX IF NOT EXISTS idx_feeling_checkins_person
ON feeling_checkins(person_id, date);

CREATE TABLE IF NOT EXISTS organization_thresholds (
    organization_id TEXT PRIMARY KEY,
    payload TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS threshold_overrides (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    person_id TEXT NOT NULL,
    burnout_red REAL,
    readiness_green REAL,
    interaction_high REAL,
    reason TEXT,
    start_date TEXT NOT NULL,
    end_date TEXT
);

CREATE TABLE IF NOT EXISTS scoring_results (
    person_id TEXT NOT NULL,
    organization_id TEXT,
    date TEXT NOT NULL,
    burnout_score REAL NOT NULL,
    readiness_score REAL NOT NULL,
    zone TEXT NOT NULL,
    previous_zone TEXT NOT NULL,
    zone_changed INTEGER NOT NULL,
    explanation TEXT NOT NULL,
    UNIQUE(person_id, date)
);

CREATE INDEX IF NOT EXISTS idx_scoring_results_org
ON scoring_results(organization_id, date);
"""

PERCENTILE_WINDOW_DAYS = 30

SYSTEM_ORG = "__system__"

_PREFERENCE_FIELDS = tuple(PersonalPreferences.__dataclass_fields__)
_THRESHOLD_FIELDS = tuple(ThresholdConfig.__dataclass_fields__)


class StorageError(RuntimeError):
    """A persistence read or write failed; the day's run should be retried."""

    def __init__(self, operation: str, cause: Exception) -> None:
        super().__init__(f"{operation} failed: {cause}")
        self.operation = operation


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _day(value: Optional[str]) -> Optional[date]:
    return date.fromisoformat(value) if value else None


def _row_values(row: sqlite3.Row, skip: tuple = ()) -> dict[str, Any]:
    return {k: row[k] for k in row.keys() if k not in skip}


class SQLiteStore:
    """Repository for engine inputs and results."""

    def __init__(self, db_path: Path) -> None:
        """Create store and ensure schema exists."""
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._session("init schema") as conn:
            conn.executescript(SCHEMA_SQL)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def _session(self, operation: str) -> Iterator[sqlite3.Connection]:
        """One connection per operation; sqlite errors surface as StorageError."""
        try:
            conn = self._connect()
        except sqlite3.Error as exc:
            raise StorageError(operation, exc) from exc
        try:
            with conn:
                yield conn
        except sqlite3.Error as exc:
            logger.error("Storage operation '%s' failed: %s", operation, exc)
            raise StorageError(operation, exc) from exc
        finally:
            conn.close()

    # -- Samples --------------------------------------------------------------

    def save_health(self, person_id: str, sample: HealthSample) -> None:
        values = {k: getattr(sample, k) for k in HealthSample.__dataclass_fields__ if k != "day"}
        cols = ", ".join(values)
        marks = ", ".join("?" for _ in values)
        updates = ", ".join(f"{k}=excluded.{k}" for k in values)
        with self._session("save health sample") as conn:
            conn.execute(
                f"""
                INSERT INTO health_samples(person_id, date, {cols}) VALUES(?, ?, {marks})
                ON CONFLICT(person_id, date) DO UPDATE SET {updates}
                """,
                (person_id, sample.day.isoformat(), *values.values()),
            )

    def save_work(self, person_id: str, sample: WorkSample) -> None:
        values = {k: getattr(sample, k) for k in WorkSample.__dataclass_fields__ if k != "day"}
        cols = ", ".join(values)
        marks = ", ".join("?" for _ in values)
        updates = ", ".join(f"{k}=excluded.{k}" for k in values)
        with self._session("save work sample") as conn:
            conn.execute(
                f"""
                INSERT INTO work_samples(person_id, date, {cols}) VALUES(?, ?, {marks})
                ON CONFLICT(person_id, date) DO UPDATE SET {updates}
                """,
                (person_id, sample.day.isoformat(), *values.values()),
            )

    def latest_health(self, person_id: str, day: date) -> Optional[HealthSample]:
        """Most recent health sample on or before `day`."""
        with self._session("load health sample") as conn:
            row = conn.execute(
                """
                SELECT * FROM health_samples
                WHERE person_id = ? AND date <= ?
                ORDER BY date DESC LIMIT 1
                """,
                (person_id, day.isoformat()),
            ).fetchone()
        if row is None:
            return None
        return HealthSample(day=_day(row["date"]), **_row_values(row, skip=("person_id", "date")))

    def latest_work(self, person_id: str, day: date) -> Optional[WorkSample]:
        """Most recent work sample on or before `day`."""
        with self._session("load work sample") as conn:
            row = conn.execute(
                """
                SELECT * FROM work_samples
                WHERE person_id = ? AND date <= ?
                ORDER BY date DESC LIMIT 1
                """,
                (person_id, day.isoformat()),
            ).fetchone()
        if row is None:
            return None
        return WorkSample(day=_day(row["date"]), **_row_values(row, skip=("person_id", "date")))

    # -- Baseline and personalization -----------------------------------------

    def save_baseline(self, person_id: str, baseline: Baseline) -> None:
        with self._session("save baseline") as conn:
            conn.execute(
                """
                INSERT INTO baselines(person_id, sleep_hours, sleep_quality, hrv, resting_hr, hours_worked)
                VALUES(?, ?, ?, ?, ?, ?)
                ON CONFLICT(person_id) DO UPDATE SET
                    sleep_hours=excluded.sleep_hours,
                    sleep_quality=excluded.sleep_quality,
                    hrv=excluded.hrv,
                    resting_hr=excluded.resting_hr,
                    hours_worked=excluded.hours_worked
                """,
                (
                    person_id, baseline.sleep_hours, baseline.sleep_quality,
                    baseline.hrv, baseline.resting_hr, baseline.hours_worked,
                ),
            )

    def load_baseline(self, person_id: str) -> Optional[Baseline]:
        with self._session("load baseline") as conn:
            row = conn.execute(
                "SELECT * FROM baselines WHERE person_id = ?", (person_id,)
            ).fetchone()
        if row is None:
            return None
        return Baseline(**_row_values(row, skip=("person_id",)))

    def save_preferences(self, person_id: str, prefs: PersonalPreferences) -> None:
        payload = json.dumps({k: getattr(prefs, k) for k in _PREFERENCE_FIELDS})
        with self._session("save preferences") as conn:
            conn.execute(
                """
                INSERT INTO personal_preferences(person_id, payload) VALUES(?, ?)
                ON CONFLICT(person_id) DO UPDATE SET payload=excluded.payload
                """,
                (person_id, payload),
            )

    def load_preferences(self, person_id: str) -> Optional[PersonalPreferences]:
        with self._session("load preferences") as conn:
            row = conn.execute(
                "SELECT payload FROM personal_preferences WHERE person_id = ?", (person_id,)
            ).fetchone()
        if row is None:
            return None
        data = json.loads(row["payload"])
        return PersonalPreferences(**{k: v for k, v in data.items() if k in _PREFERENCE_FIELDS})

    def add_life_event(self, person_id: str, event: LifeEvent) -> int:
        with self._session("add life event") as conn:
            cur = conn.execute(
                """
                INSERT INTO life_events(
                    person_id, event_type, label, start_date, end_date,
                    sleep_adjustment, work_adjustment, exercise_adjustment,
                    stress_tolerance_adjustment, is_active
                ) VALUES(?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    person_id, event.event_type, event.label,
                    event.start_date.isoformat(), _iso(event.end_date),
                    event.sleep_adjustment, event.work_adjustment,
                    event.exercise_adjustment, event.stress_tolerance_adjustment,
                    int(event.is_active),
                ),
            )
            return int(cur.lastrowid)

    def active_life_events(self, person_id: str, day: date) -> list[LifeEvent]:
        """Events with start_date <= day <= end_date (or open-ended)."""
        with self._session("load life events") as conn:
            rows = conn.execute(
                """
                SELECT * FROM life_events
                WHERE person_id = ?
                  AND is_active = 1
                  AND start_date <= ?
                  AND (end_date IS NULL OR end_date >= ?)
                ORDER BY start_date DESC, id DESC
                """,
                (person_id, day.isoformat(), day.isoformat()),
            ).fetchall()
        return [
            LifeEvent(
                label=row["label"],
                start_date=_day(row["start_date"]),
                end_date=_day(row["end_date"]),
                event_type=row["event_type"],
                sleep_adjustment=row["sleep_adjustment"] or 0.0,
                work_adjustment=row["work_adjustment"] or 0.0,
                exercise_adjustment=row["exercise_adjustment"] or 0.0,
                stress_tolerance_adjustment=row["stress_tolerance_adjustment"] or 0.0,
                is_active=bool(row["is_active"]),
            )
            for row in rows
        ]

    def add_checkin(self, person_id: str, checkin: FeelingCheckin) -> None:
        with self._session("add checkin") as conn:
            conn.execute(
                """
                INSERT INTO feeling_checkins(
                    person_id, date, overall_feeling, stress_level, burnout_score_at_checkin
                ) VALUES(?, ?, ?, ?, ?)
                """,
                (
                    person_id, checkin.day.isoformat(), checkin.overall_feeling,
                    checkin.stress_level, checkin.burnout_score_at_checkin,
                ),
            )

    def recent_checkins(self, person_id: str, day: date, window_days: int) -> list[FeelingCheckin]:
        start = day - timedelta(days=window_days)
        with self._session("load checkins") as conn:
            rows = conn.execute(
                """
                SELECT * FROM feeling_checkins
                WHERE person_id = ? AND date > ? AND date <= ?
                ORDER BY date DESC
                """,
                (person_id, start.isoformat(), day.isoformat()),
            ).fetchall()
        return [
            FeelingCheckin(
                day=_day(row["date"]),
                overall_feeling=row["overall_feeling"],
                stress_level=row["stress_level"],
                burnout_score_at_checkin=row["burnout_score_at_checkin"],
            )
            for row in rows
        ]

    # -- Thresholds -----------------------------------------------------------

    def save_organization_thresholds(self, organization_id: Optional[str], thresholds: ThresholdConfig) -> None:
        """Store an organization row; None stores the system default row."""
        payload = json.dumps({k: getattr(thresholds, k) for k in _THRESHOLD_FIELDS})
        with self._session("save organization thresholds") as conn:
            conn.execute(
                """
                INSERT INTO organization_thresholds(organization_id, payload) VALUES(?, ?)
                ON CONFLICT(organization_id) DO UPDATE SET payload=excluded.payload
                """,
                (organization_id or SYSTEM_ORG, payload),
            )

    def add_threshold_override(
        self,
        person_id: str,
        override: ThresholdOverride,
        start_date: date,
        end_date: Optional[date] = None,
    ) -> int:
        with self._session("add threshold override") as conn:
            cur = conn.execute(
                """
                INSERT INTO threshold_overrides(
                    person_id, burnout_red, readiness_green, interaction_high,
                    reason, start_date, end_date
                ) VALUES(?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    person_id, override.burnout_red, override.readiness_green,
                    override.interaction_high, override.reason,
                    start_date.isoformat(), _iso(end_date),
                ),
            )
            return int(cur.lastrowid)

    def thresholds_for(self, person_id: str, organization_id: Optional[str], day: date) -> ThresholdConfig:
        """
        Resolve person override > organization > system default for `day`.

        A percentile row has its red/green cutoffs recomputed from the
        organization's scores over the preceding 30 days before the
        person override is applied.
        """
        with self._session("load thresholds") as conn:
            org_rows = conn.execute(
                "SELECT organization_id, payload FROM organization_thresholds WHERE organization_id IN (?, ?)",
                (organization_id or SYSTEM_ORG, SYSTEM_ORG),
            ).fetchall()
            override_row = conn.execute(
                """
                SELECT * FROM threshold_overrides
                WHERE person_id = ?
                  AND start_date <= ?
                  AND (end_date IS NULL OR end_date >= ?)
                ORDER BY id DESC LIMIT 1
                """,
                (person_id, day.isoformat(), day.isoformat()),
            ).fetchone()

        rows = {row["organization_id"]: ThresholdConfig(**json.loads(row["payload"])) for row in org_rows}
        system = rows.get(SYSTEM_ORG)
        organization = rows.get(organization_id) if organization_id else None

        override = None
        if override_row is not None:
            override = ThresholdOverride(
                burnout_red=override_row["burnout_red"],
                readiness_green=override_row["readiness_green"],
                interaction_high=override_row["interaction_high"],
                reason=override_row["reason"],
            )

        base = resolve_thresholds(system=system, organization=organization)
        if base.threshold_type == "percentile":
            scores = self.organization_scores(organization_id, day)
            derived = percentile_thresholds(
                scores["burnout_score"], scores["readiness_score"], defaults=base,
            )
            logger.debug(
                "Percentile thresholds for %s on %s: %s",
                organization_id or SYSTEM_ORG, day, derived,
            )
            if derived["calculated"]:
                base = replace(
                    base,
                    burnout_red=derived["burnout_red"],
                    readiness_green=derived["readiness_green"],
                )
        return resolve_thresholds(organization=base, override=override)

    def organization_scores(
        self,
        organization_id: Optional[str],
        day: date,
        window_days: int = PERCENTILE_WINDOW_DAYS,
    ) -> pd.DataFrame:
        """
        Scores recorded in [day - window_days, day) for an organization.

        None reads every organization. The day itself is excluded so a
        rerun of the day resolves the same cutoffs.
        """
        query = """
            SELECT burnout_score, readiness_score
            FROM scoring_results
            WHERE date >= ? AND date < ?
        """
        params: list[Any] = [(day - timedelta(days=window_days)).isoformat(), day.isoformat()]
        if organization_id is not None:
            query += " AND organization_id = ?"
            params.append(organization_id)

        with self._session("load organization scores") as conn:
            return pd.read_sql_query(query, conn, params=params)

    # -- Scoring results ------------------------------------------------------

    def upsert_scoring_result(self, result: ScoringResult, organization_id: Optional[str] = None) -> None:
        """Insert or overwrite the (person, day) row. Safe to repeat."""
        explanation = json.dumps(result.explanation.to_dict(), sort_keys=True)
        with self._session("upsert scoring result") as conn:
            conn.execute(
                """
                INSERT INTO scoring_results(
                    person_id, organization_id, date, burnout_score, readiness_score,
                    zone, previous_zone, zone_changed, explanation
                ) VALUES(?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(person_id, date) DO UPDATE SET
                    organization_id=excluded.organization_id,
                    burnout_score=excluded.burnout_score,
                    readiness_score=excluded.readiness_score,
                    zone=excluded.zone,
                    previous_zone=excluded.previous_zone,
                    zone_changed=excluded.zone_changed,
                    explanation=excluded.explanation
                """,
                (
                    result.person_id, organization_id, result.day.isoformat(),
                    result.burnout_score, result.readiness_score,
                    result.zone.value, result.previous_zone.value,
                    int(result.zone_changed), explanation,
                ),
            )

    def scoring_history(self, person_id: str, before: Optional[date] = None) -> pd.DataFrame:
        """All scoring rows for a person (optionally strictly before a day), oldest first."""
        query = """
            SELECT date, burnout_score, readiness_score, zone, previous_zone, zone_changed
            FROM scoring_results
            WHERE person_id = ?
        """
        params: list[Any] = [person_id]
        if before is not None:
            query += " AND date < ?"
            params.append(before.isoformat())
        query += " ORDER BY date ASC"

        with self._session("load scoring history") as conn:
            df = pd.read_sql_query(query, conn, params=params)
        if df.empty:
            return df
        df["date"] = pd.to_datetime(df["date"]).dt.date
        df["zone_changed"] = df["zone_changed"].astype(bool)
        return df

    def previous_zone(self, person_id: str, day: date) -> Optional[Zone]:
        """Zone of the most recent record strictly before `day`."""
        with self._session("load previous zone") as conn:
            row = conn.execute(
                """
                SELECT zone FROM scoring_results
                WHERE person_id = ? AND date < ?
                ORDER BY date DESC LIMIT 1
                """,
                (person_id, day.isoformat()),
            ).fetchone()
        return Zone(row["zone"]) if row else None

    def scoring_row_count(self, person_id: str) -> int:
        with self._session("count scoring rows") as conn:
            row = conn.execute(
                "SELECT COUNT(*) AS n FROM scoring_results WHERE person_id = ?", (person_id,)
            ).fetchone()
        return int(row["n"])

    def load_explanation(self, person_id: str, day: date) -> Optional[dict[str, Any]]:
        with self._session("load explanation") as conn:
            row = conn.execute(
                "SELECT explanation FROM scoring_results WHERE person_id = ? AND date = ?",
                (person_id, day.isoformat()),
            ).fetchone()
        return json.loads(row["explanation"]) if row else None
