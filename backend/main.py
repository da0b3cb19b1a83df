"""
main.py
───────
Chronos alarm backend: FastAPI entry point.

Exposes:
  REST  /api/alarms                      CRUD + toggle + occurrence preview
  REST  /api/notifications/pending       what the scheduler currently holds
  REST  /api/sounds                      system + custom sound catalogue
  REST  /api/holidays                    holiday table
  WS    /ws                              push of fired alarms
"""

import asyncio
import logging
import os
import platform
from contextlib import asynccontextmanager
from datetime import date, datetime, timedelta
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from alarm_manager import AlarmManager, default_draft
from config import Settings, load_settings, setup_logging
from errors import AlarmLimitError, PersistenceError
from holiday_calendar import DEFAULT_CALENDAR
from models import Alarm, AlarmCreate, AlarmUpdate, Registration, Sound, SoundCreate
from notifier import LocalNotificationScheduler
from repeat_rules import describe, occurrence_dates
from sound_catalog import SoundCatalog
from storage import JsonStorage

logger = logging.getLogger(__name__)


class AlarmOut(Alarm):
    description: str = ""


def _out(alarm: Alarm) -> AlarmOut:
    return AlarmOut(**alarm.model_dump(), description=describe(alarm))


# ── WebSocket connection registry ─────────────────────────────────────────────

class ConnectionManager:
    def __init__(self):
        self.active: List[WebSocket] = []
        self._lock = asyncio.Lock()

    async def connect(self, ws: WebSocket):
        await ws.accept()
        async with self._lock:
            self.active.append(ws)

    async def disconnect(self, ws: WebSocket):
        async with self._lock:
            self.active = [c for c in self.active if c is not ws]

    async def broadcast(self, data: dict):
        async with self._lock:
            dead = []
            for ws in self.active:
                try:
                    await ws.send_json(data)
                except Exception:
                    dead.append(ws)
            self.active = [c for c in self.active if c not in dead]


# ── App factory ───────────────────────────────────────────────────────────────

def create_app(settings: Optional[Settings] = None, scheduler=None) -> FastAPI:
    settings   = settings or load_settings()
    storage    = JsonStorage(settings.data_dir)
    ws_manager = ConnectionManager()
    state = {"loop": None}

    def _alarm_fired(registration: Registration):
        """Called on the notifier thread when a notification is delivered."""
        loop = state["loop"]
        if loop is None:
            return
        asyncio.run_coroutine_threadsafe(
            ws_manager.broadcast({
                "event": "alarm_fired",
                "alarm_id": registration.alarm_id,
                "title": registration.payload.get("title"),
                "sound_id": registration.payload.get("sound_id"),
            }),
            loop,
        )

    owns_scheduler = scheduler is None
    if owns_scheduler:
        scheduler = LocalNotificationScheduler(
            on_fire=_alarm_fired,
            tick_seconds=settings.notifier_tick_seconds,
            desktop=settings.desktop_notifications,
        )

    alarm_mgr = AlarmManager(
        storage,
        scheduler,
        sweep_interval=settings.sweep_interval_seconds,
        horizon_days=settings.schedule_horizon_days,
    )
    sounds = SoundCatalog(storage)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        state["loop"] = asyncio.get_running_loop()
        logger.info("Chronos starting (pid=%s, platform=%s)", os.getpid(), platform.system())
        alarm_mgr.start()
        if owns_scheduler:
            scheduler.start()

        yield

        alarm_mgr.stop()
        if owns_scheduler:
            scheduler.stop()
        state["loop"] = None
        logger.info("Chronos shutdown complete")

    app = FastAPI(title="Chronos Alarm", version="1.0.0", lifespan=lifespan)
    app.state.alarm_mgr = alarm_mgr
    app.state.sounds    = sounds
    app.state.scheduler = scheduler

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(PersistenceError)
    async def persistence_error_handler(request: Request, exc: PersistenceError):
        logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=500, content={"detail": "Storage unavailable"})

    # ── WebSocket endpoint ────────────────────────────────────────────────────

    @app.websocket("/ws")
    async def websocket_endpoint(ws: WebSocket):
        await ws_manager.connect(ws)
        try:
            while True:
                data = await ws.receive_json()
                if data.get("type") == "ping":
                    await ws.send_json({"type": "pong"})
        except WebSocketDisconnect:
            await ws_manager.disconnect(ws)

    # ── Alarm endpoints ───────────────────────────────────────────────────────

    def _with_sound_name(data: dict) -> dict:
        sound_id = data.get("sound_id")
        if sound_id:
            sound = sounds.get_sound(sound_id)
            if sound is None:
                raise HTTPException(status_code=422, detail=f"Unknown sound {sound_id}")
            data["sound_name"] = sound.name
        return data

    @app.get("/api/alarms", response_model=list[AlarmOut])
    def list_alarms():
        return [_out(a) for a in alarm_mgr.get_all()]

    @app.get("/api/alarms/default", response_model=AlarmCreate)
    def new_alarm_defaults():
        return default_draft(datetime.now())

    @app.post("/api/alarms", response_model=AlarmOut, status_code=201)
    def create_alarm(body: AlarmCreate):
        try:
            alarm = alarm_mgr.create(_with_sound_name(body.model_dump()))
        except AlarmLimitError as exc:
            raise HTTPException(status_code=409, detail=str(exc))
        return _out(alarm)

    @app.get("/api/alarms/{alarm_id}", response_model=AlarmOut)
    def get_alarm(alarm_id: str):
        alarm = alarm_mgr.get(alarm_id)
        if not alarm:
            raise HTTPException(status_code=404, detail="Alarm not found")
        return _out(alarm)

    @app.patch("/api/alarms/{alarm_id}", response_model=AlarmOut)
    def update_alarm(alarm_id: str, body: AlarmUpdate):
        changes = _with_sound_name(body.model_dump(exclude_none=True))
        updated = alarm_mgr.update(alarm_id, **changes)
        if not updated:
            raise HTTPException(status_code=404, detail="Alarm not found")
        return _out(updated)

    @app.delete("/api/alarms/{alarm_id}", status_code=204)
    def delete_alarm(alarm_id: str):
        if not alarm_mgr.delete(alarm_id):
            raise HTTPException(status_code=404, detail="Alarm not found")

    @app.post("/api/alarms/{alarm_id}/toggle", response_model=AlarmOut)
    def toggle_alarm(alarm_id: str):
        alarm = alarm_mgr.toggle(alarm_id)
        if not alarm:
            raise HTTPException(status_code=404, detail="Alarm not found")
        return _out(alarm)

    @app.get("/api/alarms/{alarm_id}/occurrences", response_model=list[date])
    def alarm_occurrences(alarm_id: str, start: Optional[date] = None, end: Optional[date] = None):
        alarm = alarm_mgr.get(alarm_id)
        if not alarm:
            raise HTTPException(status_code=404, detail="Alarm not found")
        start = start or date.today()
        end   = end or start + timedelta(days=settings.schedule_horizon_days)
        return occurrence_dates(alarm, start, end)

    # ── Notifications ─────────────────────────────────────────────────────────

    @app.get("/api/notifications/pending", response_model=list[Registration])
    def pending_notifications():
        return scheduler.list_pending()

    # ── Sounds ────────────────────────────────────────────────────────────────

    @app.get("/api/sounds", response_model=list[Sound])
    def list_sounds():
        return sounds.all_sounds()

    @app.post("/api/sounds", response_model=Sound, status_code=201)
    def add_sound(body: SoundCreate):
        return sounds.add_custom_sound(body.name.strip(), body.uri)

    @app.delete("/api/sounds/{sound_id}", status_code=204)
    def delete_sound(sound_id: str):
        if not sounds.delete_custom_sound(sound_id):
            raise HTTPException(status_code=404, detail="Custom sound not found")

    # ── Holidays ──────────────────────────────────────────────────────────────

    @app.get("/api/holidays")
    def list_holidays(year: Optional[int] = None):
        year = year or date.today().year
        return [
            {"date": h.date.isoformat(), "name": h.name}
            for h in DEFAULT_CALENDAR.holidays_in_year(year)
        ]

    # ── Health / info ─────────────────────────────────────────────────────────

    @app.get("/api/health")
    def health():
        return {
            "status": "ok",
            "pid": os.getpid(),
            "platform": platform.system(),
            "python": platform.python_version(),
            "alarms": len(alarm_mgr.get_all()),
            "pending_notifications": len(scheduler.list_pending()),
        }

    return app


# ── Entry point ───────────────────────────────────────────────────────────────

if __name__ == "__main__":
    import uvicorn

    _settings = load_settings()
    setup_logging(_settings.log_level, _settings.log_dir)
    uvicorn.run(create_app(_settings), host="0.0.0.0", port=8000)
