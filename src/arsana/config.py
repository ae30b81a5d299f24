from __future__ import annotations

from datetime import time
import re
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlmodel import Session, select

from arsana.db import DEFAULT_SETTINGS
from arsana.models import Settings
from arsana.timeutil import parse_time_hhmm

ALLOWED_SETTING_KEYS: set[str] = set(DEFAULT_SETTINGS)

_HHMM_PATTERN = re.compile(r"^(?:[01]\d|2[0-3]):[0-5]\d$")
_TIME_KEYS: set[str] = {"sweep_time"}
_MIN_INT_KEYS: dict[str, int] = {
    "sweep_lease_sec": 60,
    "upcoming_limit": 1,
}


def validate_setting(key: str, value: str) -> None:
    if key not in ALLOWED_SETTING_KEYS:
        allowed = ", ".join(sorted(ALLOWED_SETTING_KEYS))
        raise ValueError(f"Unknown setting key: {key}. Allowed keys: {allowed}.")

    if key == "timezone":
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Invalid timezone '{value}'. Expected a valid IANA timezone.") from exc
        return

    if key in _TIME_KEYS:
        if not _HHMM_PATTERN.fullmatch(value):
            raise ValueError(f"Invalid HH:MM value for {key}: '{value}'.")
        return

    if key in _MIN_INT_KEYS:
        minimum = _MIN_INT_KEYS[key]
        parsed = _parse_int(value, key)
        if parsed < minimum:
            raise ValueError(f"Invalid value for {key}: must be an integer >= {minimum}.")
        return


def _parse_int(value: str, key: str) -> int:
    try:
        return int(value)
    except ValueError as exc:
        raise ValueError(f"Invalid value for {key}: must be an integer.") from exc


def list_settings(session: Session) -> list[Settings]:
    return session.exec(select(Settings).order_by(Settings.key)).all()


def get_setting(session: Session, key: str) -> str:
    setting = session.get(Settings, key)
    if setting is None:
        return DEFAULT_SETTINGS[key]
    return setting.value


def upsert_setting(session: Session, key: str, value: str) -> Settings:
    validate_setting(key, value)

    setting = session.get(Settings, key)
    if setting is None:
        setting = Settings(key=key, value=value)
        session.add(setting)
    else:
        setting.value = value

    session.commit()
    session.refresh(setting)
    return setting


def get_timezone(session: Session) -> ZoneInfo:
    return ZoneInfo(get_setting(session, "timezone"))


def get_sweep_time(session: Session) -> time:
    return parse_time_hhmm(get_setting(session, "sweep_time"))


def get_int_setting(session: Session, key: str) -> int:
    return int(get_setting(session, key))
