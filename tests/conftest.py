from datetime import datetime

import pytest

from alarm_manager import AlarmManager
from storage import JsonStorage


class RecordingScheduler:
    """Notification scheduler fake that records every call in order."""

    def __init__(self):
        self.calls = []
        self.pending = {}
        self.fail_on = set()
        self._next_id = 0

    def _check(self, name):
        if name in self.fail_on:
            raise RuntimeError(f"{name} failed")

    def schedule_once(self, alarm_id, fire_at, payload):
        self._check("schedule_once")
        self.calls.append(("once", alarm_id, fire_at))
        return self._store(alarm_id, ("once", fire_at))

    def schedule_recurring(self, alarm_id, weekday, time, payload):
        self._check("schedule_recurring")
        self.calls.append(("recurring", alarm_id, weekday, time))
        return self._store(alarm_id, ("recurring", weekday, time))

    def cancel_all(self, alarm_id):
        self._check("cancel_all")
        self.calls.append(("cancel", alarm_id))
        self.pending = {k: v for k, v in self.pending.items() if v[0] != alarm_id}

    def list_pending(self):
        return list(self.pending.values())

    def _store(self, alarm_id, spec):
        self._next_id += 1
        reg_id = f"reg-{self._next_id}"
        self.pending[reg_id] = (alarm_id, spec)
        return reg_id

    def specs_for(self, alarm_id):
        return sorted(spec for owner, spec in list(self.pending.values()) if owner == alarm_id)

    def calls_for(self, alarm_id):
        return [c for c in self.calls if c[1] == alarm_id]


class Clock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock():
    return Clock(datetime(2026, 2, 5, 7, 0))


@pytest.fixture
def storage(tmp_path):
    return JsonStorage(tmp_path / "data")


@pytest.fixture
def scheduler():
    return RecordingScheduler()


@pytest.fixture
def manager(storage, scheduler, clock):
    return AlarmManager(storage, scheduler, now_fn=clock)
