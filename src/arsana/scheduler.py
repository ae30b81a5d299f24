from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, time, timedelta, timezone
import logging
import os
import socket
import threading

import sqlalchemy as sa
from sqlmodel import Session

from arsana.config import get_int_setting, get_timezone
from arsana.models import SchedulerLease
from arsana.sweep import SweepResult, run_daily_sweep

logger = logging.getLogger(__name__)

SWEEP_LEASE_NAME = "daily_sweep"

Clock = Callable[[], datetime]
Job = Callable[[], object]


def default_owner() -> str:
    return f"{socket.gethostname()}:{os.getpid()}"


def next_run_at(now: datetime, at_time: time) -> datetime:
    """Next wall-clock occurrence of ``at_time`` strictly after ``now``."""
    candidate = now.replace(hour=at_time.hour, minute=at_time.minute, second=0, microsecond=0)
    if candidate <= now:
        candidate += timedelta(days=1)
    return candidate


def _lease_ts(dt: datetime) -> str:
    # Fixed-width UTC so lease timestamps compare correctly as text.
    if dt.tzinfo is None:
        raise ValueError("lease timestamps require a tz-aware datetime")
    return dt.astimezone(timezone.utc).isoformat(timespec="seconds")


def acquire_lease(
    session: Session,
    *,
    name: str,
    owner: str,
    now: datetime,
    ttl_sec: int,
) -> bool:
    """Take or renew the named lease. False while another owner holds an unexpired lease."""
    now_ts = _lease_ts(now)
    expires_ts = _lease_ts(now + timedelta(seconds=ttl_sec))

    if session.get(SchedulerLease, name) is None:
        session.add(SchedulerLease(name=name, owner=owner, acquired_at=now_ts, expires_at=expires_ts))
        try:
            session.commit()
        except sa.exc.IntegrityError:
            session.rollback()
            logger.info("scheduler_lease_busy name=%s owner=%s", name, owner)
            return False
        logger.info("scheduler_lease_acquired name=%s owner=%s expires_at=%s", name, owner, expires_ts)
        return True

    result = session.exec(
        sa.update(SchedulerLease)
        .where(SchedulerLease.name == name)
        .where(sa.or_(SchedulerLease.owner == owner, SchedulerLease.expires_at <= now_ts))
        .values(owner=owner, acquired_at=now_ts, expires_at=expires_ts)
        .execution_options(synchronize_session=False)
    )
    session.commit()
    session.expire_all()
    if result.rowcount != 1:
        logger.info("scheduler_lease_busy name=%s owner=%s", name, owner)
        return False

    logger.info("scheduler_lease_acquired name=%s owner=%s expires_at=%s", name, owner, expires_ts)
    return True


def release_lease(session: Session, *, name: str, owner: str) -> bool:
    lease = session.get(SchedulerLease, name)
    if lease is None or lease.owner != owner:
        return False
    session.delete(lease)
    session.commit()
    logger.info("scheduler_lease_released name=%s owner=%s", name, owner)
    return True


def run_scheduled_sweep(
    engine,
    *,
    owner: str,
    now: datetime | None = None,
) -> SweepResult | None:
    """Run the daily sweep if this process wins the lease. None when skipped."""
    with Session(engine) as session:
        tz = get_timezone(session)
        local_now = (now or datetime.now(tz)).astimezone(tz)
        ttl_sec = get_int_setting(session, "sweep_lease_sec")

        if not acquire_lease(session, name=SWEEP_LEASE_NAME, owner=owner, now=local_now, ttl_sec=ttl_sec):
            logger.info("sweep_skipped reason=lease_held owner=%s", owner)
            return None

        return run_daily_sweep(session, today=local_now.date(), now=local_now)


class DailyScheduler:
    """Run a job once a day at a fixed wall-clock time on a background thread.

    ``stop()`` wakes the thread immediately and joins it, so the scheduler can
    be torn down on shutdown or reload without leaving a second timer behind.
    """

    def __init__(
        self,
        *,
        job: Job,
        at_time: time,
        clock: Clock,
        name: str = "arsana-scheduler",
    ) -> None:
        self._job = job
        self._at_time = at_time
        self._clock = clock
        self._name = name
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self.runs = 0

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            raise RuntimeError(f"Scheduler {self._name} is already running.")
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name=self._name, daemon=True)
        self._thread.start()
        logger.info("scheduler_started name=%s at=%s", self._name, self._at_time.strftime("%H:%M"))

    def stop(self, timeout: float | None = None) -> None:
        self._stop.set()
        thread = self._thread
        if thread is None:
            return
        thread.join(timeout)
        self._thread = None
        logger.info("scheduler_stopped name=%s runs=%s", self._name, self.runs)

    def wait(self, timeout: float | None = None) -> bool:
        """Block until stop() is called. True if stopped."""
        return self._stop.wait(timeout)

    def run_once(self) -> None:
        try:
            self._job()
        except Exception:
            logger.exception("scheduler_job_failed name=%s", self._name)
        finally:
            self.runs += 1

    def _loop(self) -> None:
        due = next_run_at(self._clock(), self._at_time)
        while not self._stop.is_set():
            logger.info("scheduler_next_run name=%s due=%s", self._name, due.isoformat())
            delay_sec = max((due - self._clock()).total_seconds(), 0.0)
            if self._stop.wait(delay_sec):
                break
            self.run_once()
            # Advance from the fired slot; the clock may still read just before it.
            now = self._clock()
            due += timedelta(days=1)
            if due <= now:
                due = next_run_at(now, self._at_time)

    def __enter__(self) -> DailyScheduler:
        self.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()
