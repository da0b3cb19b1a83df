"""
alarm_manager.py
────────────────
Owner of the alarm collection.

Every mutation runs under one lock from start to finish: the new collection
is written to storage first and only then becomes the in-memory state, after
which the notification scheduler is brought in line. Scheduler failures are
logged and left for the next sweep / start-up reconcile to repair; storage
failures propagate and leave the in-memory state untouched.

A background sweeper disables dated one-off alarms whose time has passed and
tops up the dated registrations of holiday and custom alarms before their
horizon runs out. It runs while at least one alarm is loaded.
"""

import logging
import threading
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Union

from pydantic import BaseModel

from errors import AlarmLimitError, ChronosError
from holiday_calendar import HolidayCalendar
from models import Alarm, AlarmCreate, AlarmUpdate, CustomRule, HolidayRule, OnceRule
from notifier import NotificationScheduler
from occurrences import (
    DEFAULT_HORIZON_DAYS,
    OnceTrigger,
    WeeklyTrigger,
    is_expired,
    registration_requests,
)
from storage import JsonStorage

logger = logging.getLogger(__name__)

MAX_ALARMS = 30
SWEEP_INTERVAL = 60       # seconds

_IMMUTABLE_FIELDS = {"id", "created_at", "updated_at"}


def default_draft(now: datetime) -> AlarmCreate:
    """New-alarm defaults: the next full hour, no repeat, default sound."""
    next_hour = (now + timedelta(hours=1)).replace(minute=0, second=0, microsecond=0)
    return AlarmCreate(time=next_hour.strftime("%H:%M"))


def _schedule_key(alarm: Alarm):
    return alarm.time, alarm.repeat, alarm.enabled


class AlarmManager:
    """
    Alarm CRUD plus notification sync.

      create / update / delete / toggle    user operations
      sweep_expired                        disable passed one-off alarms
      refresh_horizon                      extend holiday / custom registrations
      reconcile                            re-register everything (app start)
    """

    def __init__(
        self,
        storage: JsonStorage,
        scheduler: NotificationScheduler,
        now_fn: Callable[[], datetime] = datetime.now,
        sweep_interval: float = SWEEP_INTERVAL,
        horizon_days: int = DEFAULT_HORIZON_DAYS,
        calendar: Optional[HolidayCalendar] = None,
    ):
        self._storage   = storage
        self._scheduler = scheduler
        self._now       = now_fn
        self._alarms: Dict[str, Alarm] = {}
        self._lock      = threading.RLock()
        self._started   = False
        self._sweeper: Optional[threading.Thread] = None
        self._sweep_stop = threading.Event()
        self._covered_until: Dict[str, datetime] = {}
        self.sweep_interval = sweep_interval
        self.horizon_days   = horizon_days
        self.calendar       = calendar

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    def load(self) -> None:
        """Read the stored collection into memory."""
        rows = self._storage.load_alarms()
        alarms: Dict[str, Alarm] = {}
        for row in rows:
            try:
                alarm = Alarm.model_validate(row)
            except ValueError as exc:
                logger.warning("Skipping stored alarm due to parse error: %s", exc)
                continue
            alarms[alarm.id] = alarm
        with self._lock:
            self._alarms = alarms
        logger.info("Loaded %s alarms", len(alarms))

    def start(self) -> None:
        """Load alarms, repair scheduler state and start the sweeper."""
        self.load()
        with self._lock:
            self._started = True
            self.reconcile()
            self._ensure_sweeper()

    def stop(self) -> None:
        with self._lock:
            self._started = False
            sweeper = self._stop_sweeper()
        if sweeper:
            sweeper.join(timeout=2)

    # ── Queries ───────────────────────────────────────────────────────────────

    def get_all(self) -> List[Alarm]:
        """Newest first."""
        with self._lock:
            return list(self._alarms.values())

    def get(self, alarm_id: str) -> Optional[Alarm]:
        with self._lock:
            return self._alarms.get(alarm_id)

    # ── CRUD ──────────────────────────────────────────────────────────────────

    def create(self, draft: Union[AlarmCreate, Dict[str, Any]]) -> Alarm:
        if isinstance(draft, BaseModel):
            draft = draft.model_dump()
        draft = {k: v for k, v in draft.items() if k not in _IMMUTABLE_FIELDS}
        with self._lock:
            if len(self._alarms) >= MAX_ALARMS:
                raise AlarmLimitError(f"At most {MAX_ALARMS} alarms are allowed")
            now = self._now()
            alarm = Alarm.model_validate({**draft, "created_at": now, "updated_at": now})
            self._commit({alarm.id: alarm, **self._alarms})
            logger.info("Created alarm %s at %s (enabled=%s)", alarm.id, alarm.time, alarm.enabled)

            if alarm.enabled:
                self._register(alarm, now)
            self._after_change(now)
            return self._alarms.get(alarm.id, alarm)

    def update(self, alarm_id: str, **changes) -> Optional[Alarm]:
        """
        Merge ``changes`` into the stored alarm.

        Touching time, repeat rule or enabled state cancels the alarm's
        registrations and registers it again; anything else leaves the
        scheduler alone. None values are ignored.
        """
        with self._lock:
            current = self._alarms.get(alarm_id)
            if current is None:
                return None
            now = self._now()

            data = current.model_dump()
            for key, value in changes.items():
                if value is None or key in _IMMUTABLE_FIELDS or key not in Alarm.model_fields:
                    continue
                data[key] = value.model_dump() if isinstance(value, BaseModel) else value
            data["updated_at"] = now
            updated = Alarm.model_validate(data)

            self._commit({**self._alarms, alarm_id: updated})
            logger.info("Updated alarm %s", alarm_id)

            if _schedule_key(updated) != _schedule_key(current):
                self._resync(updated, now)
            self._after_change(now)
            return self._alarms.get(alarm_id)

    def apply_update(self, alarm_id: str, patch: AlarmUpdate) -> Optional[Alarm]:
        return self.update(alarm_id, **patch.model_dump(exclude_none=True))

    def delete(self, alarm_id: str) -> bool:
        with self._lock:
            if alarm_id not in self._alarms:
                return False
            remaining = {k: v for k, v in self._alarms.items() if k != alarm_id}
            self._commit(remaining)
            logger.info("Deleted alarm %s", alarm_id)

            self._cancel(alarm_id)
            self._after_change(self._now())
            return True

    def toggle(self, alarm_id: str) -> Optional[Alarm]:
        with self._lock:
            alarm = self._alarms.get(alarm_id)
            if alarm is None:
                return None
            return self.update(alarm_id, enabled=not alarm.enabled)

    # ── Schedule maintenance ──────────────────────────────────────────────────

    def sweep_expired(self, now: Optional[datetime] = None) -> List[Alarm]:
        """Disable every enabled one-off alarm whose dated instant has passed."""
        with self._lock:
            now = now or self._now()
            expired = [a for a in self._alarms.values() if a.enabled and is_expired(a, now)]
            if not expired:
                return []

            alarms = dict(self._alarms)
            for alarm in expired:
                alarms[alarm.id] = alarm.model_copy(update={"enabled": False, "updated_at": now})
            self._commit(alarms)

            for alarm in expired:
                logger.info("Alarm %s expired at %s %s, disabled", alarm.id, alarm.repeat.date, alarm.time)
                self._cancel(alarm.id)
            return [self._alarms[a.id] for a in expired]

    def reconcile(self, now: Optional[datetime] = None) -> None:
        """Cancel and re-register every alarm so the scheduler matches storage."""
        with self._lock:
            now = now or self._now()
            self.sweep_expired(now)
            for alarm in self._alarms.values():
                self._resync(alarm, now)
            logger.info("Reconciled %s alarms with the notification scheduler", len(self._alarms))

    def refresh_horizon(self, now: Optional[datetime] = None) -> List[Alarm]:
        """
        Re-register holiday and custom alarms whose dated registrations end
        within half a horizon of ``now``. Returns the alarms refreshed.
        """
        with self._lock:
            now = now or self._now()
            threshold = now + timedelta(days=self.horizon_days / 2)
            stale = [
                a for a in self._alarms.values()
                if a.enabled
                and isinstance(a.repeat, (HolidayRule, CustomRule))
                and self._covered_until.get(a.id, now) <= threshold
            ]
            for alarm in stale:
                self._resync(alarm, now)
            if stale:
                logger.info("Extended registrations of %s alarms", len(stale))
            return stale

    def registrations_for(self, alarm: Alarm, now: Optional[datetime] = None):
        return registration_requests(
            alarm, now or self._now(), self.horizon_days, self.calendar
        )

    # ── Internal ──────────────────────────────────────────────────────────────

    def _commit(self, alarms: Dict[str, Alarm]) -> None:
        self._storage.save_alarms([a.model_dump(mode="json") for a in alarms.values()])
        self._alarms = alarms

    def _after_change(self, now: datetime) -> None:
        try:
            self.sweep_expired(now)
        except ChronosError:
            logger.exception("Eager expiry sweep failed")
        self._ensure_sweeper()

    def _resync(self, alarm: Alarm, now: datetime) -> None:
        if not self._cancel(alarm.id):
            return
        if alarm.enabled:
            self._register(alarm, now)

    def _register(self, alarm: Alarm, now: datetime) -> None:
        payload = {
            "title": alarm.label or "Alarm",
            "body": alarm.time,
            "alarm_id": alarm.id,
            "sound_id": alarm.sound_id,
        }
        count = 0
        try:
            for trigger in self.registrations_for(alarm, now):
                if isinstance(trigger, WeeklyTrigger):
                    self._scheduler.schedule_recurring(alarm.id, trigger.weekday, trigger.time, payload)
                elif isinstance(trigger, OnceTrigger):
                    self._scheduler.schedule_once(alarm.id, trigger.fire_at, payload)
                count += 1
        except Exception:
            logger.warning("Failed to register notifications for alarm %s", alarm.id, exc_info=True)
            return
        if isinstance(alarm.repeat, (HolidayRule, CustomRule)):
            self._covered_until[alarm.id] = now + timedelta(days=self.horizon_days)
        logger.debug("Scheduled %s notifications for alarm %s", count, alarm.id)

    def _cancel(self, alarm_id: str) -> bool:
        try:
            self._scheduler.cancel_all(alarm_id)
        except Exception:
            logger.warning("Failed to cancel notifications for alarm %s", alarm_id, exc_info=True)
            return False
        self._covered_until.pop(alarm_id, None)
        return True

    def _ensure_sweeper(self) -> None:
        if not self._started:
            return
        if self._alarms and self._sweeper is None:
            self._sweep_stop = threading.Event()
            self._sweeper = threading.Thread(
                target=self._sweep_loop,
                args=(self._sweep_stop,),
                daemon=True,
                name="alarm-sweeper",
            )
            self._sweeper.start()
        elif not self._alarms:
            self._stop_sweeper()

    def _stop_sweeper(self) -> Optional[threading.Thread]:
        sweeper = self._sweeper
        self._sweep_stop.set()
        self._sweeper = None
        return sweeper

    def _sweep_loop(self, stop: threading.Event) -> None:
        while not stop.wait(timeout=self.sweep_interval):
            try:
                now = self._now()
                self.sweep_expired(now)
                self.refresh_horizon(now)
            except ChronosError:
                logger.exception("Expiry sweep failed")
