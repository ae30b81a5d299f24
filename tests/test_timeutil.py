from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

import pytest

from arsana.timeutil import JAKARTA_TZ, dt_to_db, format_date_id, parse_date_ymd, parse_time_hhmm, today_in


def test_dt_to_db_keeps_offset() -> None:
    assert dt_to_db(datetime(2026, 3, 2, 8, 0, tzinfo=JAKARTA_TZ)) == "2026-03-02T08:00:00+07:00"


def test_dt_to_db_rejects_naive_datetime() -> None:
    with pytest.raises(ValueError):
        dt_to_db(datetime(2026, 3, 2, 8, 0))


def test_today_in_follows_the_given_zone() -> None:
    before = datetime.now(JAKARTA_TZ).date()
    assert today_in() in {before, datetime.now(JAKARTA_TZ).date()}

    # UTC+14 and UTC-11 are always a calendar day apart.
    assert today_in(ZoneInfo("Pacific/Kiritimati")) - today_in(ZoneInfo("Pacific/Pago_Pago")) == timedelta(days=1)


def test_parse_helpers_are_strict() -> None:
    assert parse_date_ymd("2026-03-02") == date(2026, 3, 2)
    assert parse_time_hhmm("07:30") == time(7, 30)
    with pytest.raises(ValueError):
        parse_date_ymd("02/03/2026")
    with pytest.raises(ValueError):
        parse_time_hhmm("7:30")
    with pytest.raises(ValueError):
        parse_time_hhmm("24:00")


def test_format_date_id_has_no_zero_padding() -> None:
    assert format_date_id(date(2026, 3, 9)) == "9/3/2026"
    assert format_date_id(date(2026, 12, 25)) == "25/12/2026"
