from datetime import date, timedelta

import pandas as pd

from vitalzone.config import EngineConfig
from vitalzone.fatigue import assess_fatigue, fatigue_penalty, last_good_recovery

CFG = EngineConfig()
TODAY = date(2026, 10, 14)


def history(*rows):
    return pd.DataFrame(
        [{"date": d, "zone": z, "readiness_score": r, "burnout_score": 20.0} for d, z, r in rows]
    )


def days_ago(n):
    return TODAY - timedelta(days=n)


def test_penalty_breakpoints():
    assert fatigue_penalty(0, CFG) == 0.0
    assert fatigue_penalty(14, CFG) == 0.0
    assert fatigue_penalty(15, CFG) == 5.0
    assert fatigue_penalty(21, CFG) == 5.0
    assert fatigue_penalty(22, CFG) == 10.0
    assert fatigue_penalty(30, CFG) == 10.0
    assert fatigue_penalty(31, CFG) == 15.0


def test_recent_recovery_has_no_penalty():
    a = assess_fatigue(history((days_ago(3), "green", 85.0)), TODAY, CFG)
    assert a.days_since_recovery == 3
    assert a.penalty == 0.0
    assert not a.needs_break
    assert a.last_recovery_date == days_ago(3)


def test_green_with_low_readiness_does_not_count():
    h = history((days_ago(2), "green", 75.0), (days_ago(16), "green", 90.0))
    a = assess_fatigue(h, TODAY, CFG)
    assert a.days_since_recovery == 16
    assert a.penalty == 5.0


def test_yellow_day_does_not_count():
    assert last_good_recovery(history((days_ago(1), "yellow", 95.0)), TODAY, CFG) is None


def test_today_row_is_ignored():
    h = history((TODAY, "green", 90.0), (days_ago(25), "green", 90.0))
    a = assess_fatigue(h, TODAY, CFG)
    assert a.days_since_recovery == 25
    assert a.needs_break


def test_no_history_defaults_to_thirty_days():
    a = assess_fatigue(None, TODAY, CFG)
    assert a.days_since_recovery == 30
    assert a.penalty == 10.0
    assert a.needs_break
    assert a.last_recovery_date is None

    assert assess_fatigue(pd.DataFrame(), TODAY, CFG).days_since_recovery == 30
