"""
notifier.py
───────────
Notification scheduler: holds pending notifications and delivers them.

NotificationScheduler is the contract the alarm manager talks to. Every
registration is tagged with its alarm id; cancel_all(alarm_id) looks the
tagged registrations up through list_pending() and removes them, so it is a
no-op when nothing is registered.

LocalNotificationScheduler is the in-process implementation: a ticker thread
fires due registrations as OS desktop notifications (spawned via subprocess)
and reports them through an optional callback.
"""

import logging
import platform
import subprocess
import threading
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Protocol

from errors import SchedulerError
from models import Registration

logger = logging.getLogger(__name__)


class NotificationScheduler(Protocol):
    def schedule_once(self, alarm_id: str, fire_at: datetime, payload: Dict[str, Any]) -> str: ...

    def schedule_recurring(
        self, alarm_id: str, weekday: int, time: str, payload: Dict[str, Any]
    ) -> str: ...

    def cancel_all(self, alarm_id: str) -> None: ...

    def list_pending(self) -> List[Registration]: ...


def next_weekly_instant(weekday: int, time: str, after: datetime) -> datetime:
    """First instant strictly after ``after`` on ``weekday`` (0=Sun) at ``time``."""
    hour, minute = (int(part) for part in time.split(":"))
    days_ahead = (weekday - after.isoweekday() % 7) % 7
    candidate = (after + timedelta(days=days_ahead)).replace(
        hour=hour, minute=minute, second=0, microsecond=0
    )
    if candidate <= after:
        candidate += timedelta(days=7)
    return candidate


class LocalNotificationScheduler:
    """
    In-memory registration table plus a ticker thread that delivers due
    notifications.

    Once-registrations are dropped after they fire; weekly ones move on to
    the same weekday of the following week.
    """

    def __init__(
        self,
        on_fire: Optional[Callable[[Registration], None]] = None,
        tick_seconds: float = 1.0,
        desktop: bool = True,
        now_fn: Callable[[], datetime] = datetime.now,
    ):
        self._registrations: Dict[str, Registration] = {}
        self._lock     = threading.Lock()
        self._stop     = threading.Event()
        self._on_fire  = on_fire
        self._tick     = max(0.1, tick_seconds)
        self._desktop  = desktop
        self._now      = now_fn
        self._thread: Optional[threading.Thread] = None

    def start(self):
        """Start the background delivery thread."""
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._tick_loop,
            daemon=True,
            name="notification-ticker",
        )
        self._thread.start()

    def stop(self):
        self._stop.set()
        if self._thread:
            self._thread.join(timeout=2)
        self._thread = None

    # ── Scheduling ────────────────────────────────────────────────────────────

    def schedule_once(self, alarm_id: str, fire_at: datetime, payload: Dict[str, Any]) -> str:
        registration = Registration(
            alarm_id=alarm_id, kind="once", next_fire_at=fire_at, payload=dict(payload)
        )
        return self._add(registration)

    def schedule_recurring(
        self, alarm_id: str, weekday: int, time: str, payload: Dict[str, Any]
    ) -> str:
        if not 0 <= weekday <= 6:
            raise SchedulerError(f"Invalid weekday {weekday} for alarm {alarm_id}")
        registration = Registration(
            alarm_id=alarm_id,
            kind="weekly",
            next_fire_at=next_weekly_instant(weekday, time, self._now()),
            weekday=weekday,
            time=time,
            payload=dict(payload),
        )
        return self._add(registration)

    def cancel_all(self, alarm_id: str) -> None:
        tagged = [r for r in self.list_pending() if r.alarm_id == alarm_id]
        with self._lock:
            for registration in tagged:
                self._registrations.pop(registration.id, None)
        if tagged:
            logger.debug("Cancelled %s registrations for alarm %s", len(tagged), alarm_id)

    def list_pending(self) -> List[Registration]:
        with self._lock:
            return sorted(self._registrations.values(), key=lambda r: r.next_fire_at)

    # ── Delivery ──────────────────────────────────────────────────────────────

    def fire_due(self, now: Optional[datetime] = None) -> List[Registration]:
        """Deliver every registration whose fire time is at or before ``now``."""
        now = now or self._now()
        fired = []
        with self._lock:
            for registration in list(self._registrations.values()):
                if registration.next_fire_at > now:
                    continue
                fired.append(registration)
                if registration.kind == "weekly":
                    self._registrations[registration.id] = registration.model_copy(
                        update={
                            "next_fire_at": next_weekly_instant(
                                registration.weekday, registration.time, now
                            )
                        }
                    )
                else:
                    del self._registrations[registration.id]

        for registration in fired:
            self._deliver(registration)
        return fired

    def _add(self, registration: Registration) -> str:
        with self._lock:
            self._registrations[registration.id] = registration
        logger.debug(
            "Registered %s notification %s for alarm %s at %s",
            registration.kind,
            registration.id,
            registration.alarm_id,
            registration.next_fire_at.isoformat(),
        )
        return registration.id

    def _tick_loop(self):
        while not self._stop.is_set():
            try:
                self.fire_due()
            except Exception:  # pragma: no cover - keep the ticker alive
                logger.exception("Notification tick failed")
            self._stop.wait(timeout=self._tick)

    def _deliver(self, registration: Registration):
        title = registration.payload.get("title", "Alarm")
        body  = registration.payload.get("body", "")
        logger.info("Alarm %s fired (%s %s)", registration.alarm_id, title, body)

        if self._desktop:
            self._send_os_notification(title, body)

        if self._on_fire:
            try:
                self._on_fire(registration)
            except Exception:
                logger.error("on_fire callback failed", exc_info=True)

    @staticmethod
    def _send_os_notification(title: str, body: str):
        """
        Cross-platform desktop notification via a child process.

        Linux  → notify-send (libnotify / D-Bus)
        macOS  → osascript
        Windows→ PowerShell NotifyIcon balloon
        """
        system = platform.system()
        if system == "Linux":
            cmd = ["notify-send", "--icon=dialog-information",
                   "--expire-time=8000", title, body]
        elif system == "Darwin":
            script = (
                f'display notification "{body}" '
                f'with title "{title}" sound name "Glass"'
            )
            cmd = ["osascript", "-e", script]
        elif system == "Windows":
            ps_cmd = (
                "Add-Type -AssemblyName System.Windows.Forms; "
                "$n = New-Object System.Windows.Forms.NotifyIcon; "
                "$n.Icon = [System.Drawing.SystemIcons]::Information; "
                "$n.Visible = $true; "
                f'$n.ShowBalloonTip(5000, "{title}", "{body}", '
                "[System.Windows.Forms.ToolTipIcon]::Info)"
            )
            cmd = ["powershell", "-WindowStyle", "Hidden", "-Command", ps_cmd]
        else:
            return

        try:
            subprocess.Popen(cmd, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
        except OSError:
            logger.debug("Desktop notifier %s unavailable", cmd[0])
