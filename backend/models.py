"""
models.py
─────────
Shared Pydantic data models for the Chronos alarm backend.

The repeat rule is a tagged union keyed on ``kind``: each variant only carries
the fields that mean something for it.
"""

from __future__ import annotations
import datetime as dt
import uuid
from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from pydantic import BaseModel, Field, field_validator

TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"     # "HH:MM", 24h
MAX_LABEL_LENGTH = 30

DEFAULT_SOUND_ID   = "default"
DEFAULT_SOUND_NAME = "Default"


# ── Repeat rules ──────────────────────────────────────────────────────────────

class OnceRule(BaseModel):
    kind: Literal["none"] = "none"
    date: Optional[dt.date] = None          # unset = next occurrence of time


class WeeklyRule(BaseModel):
    kind: Literal["weekly"] = "weekly"
    days: Optional[List[Annotated[int, Field(ge=0, le=6)]]] = None   # 0=Sun..6=Sat

    @field_validator("days")
    @classmethod
    def _normalise_days(cls, days):
        if days is None:
            return None
        return sorted(set(days))


class HolidayRule(BaseModel):
    kind: Literal["holiday"] = "holiday"
    # "workday" / "weekend" are the eve-of variants
    variant: Optional[Literal["all", "workday", "weekend"]] = None


class CustomRule(BaseModel):
    kind: Literal["custom"] = "custom"
    interval: Optional[int] = Field(default=None, ge=1)    # days
    end_date: Optional[dt.date] = None


RepeatRule = Annotated[
    Union[OnceRule, WeeklyRule, HolidayRule, CustomRule],
    Field(discriminator="kind"),
]


# ── Alarms ────────────────────────────────────────────────────────────────────

class Alarm(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    time: str = Field(pattern=TIME_PATTERN)
    label: str = ""
    enabled: bool = True
    repeat: RepeatRule = Field(default_factory=OnceRule)
    sound_id: str = DEFAULT_SOUND_ID
    sound_name: str = DEFAULT_SOUND_NAME
    created_at: dt.datetime = Field(default_factory=dt.datetime.now)
    updated_at: dt.datetime = Field(default_factory=dt.datetime.now)

    @property
    def clock(self) -> dt.time:
        """Time of day as a ``datetime.time``."""
        return dt.time.fromisoformat(self.time)


class AlarmCreate(BaseModel):
    time: str = Field(pattern=TIME_PATTERN)
    label: str = Field(default="", max_length=MAX_LABEL_LENGTH)
    enabled: bool = True
    repeat: RepeatRule = Field(default_factory=OnceRule)
    sound_id: str = DEFAULT_SOUND_ID
    sound_name: str = DEFAULT_SOUND_NAME


class AlarmUpdate(BaseModel):
    time: Optional[str] = Field(default=None, pattern=TIME_PATTERN)
    label: Optional[str] = Field(default=None, max_length=MAX_LABEL_LENGTH)
    enabled: Optional[bool] = None
    repeat: Optional[RepeatRule] = None
    sound_id: Optional[str] = None
    sound_name: Optional[str] = None


# ── Sounds ────────────────────────────────────────────────────────────────────

class Sound(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    uri: str
    is_custom: bool = False


class SoundCreate(BaseModel):
    name: str = Field(min_length=1, max_length=MAX_LABEL_LENGTH)
    uri: str = Field(min_length=1)


# ── Notification registrations ────────────────────────────────────────────────

class Registration(BaseModel):
    """A pending notification, tagged with the alarm it belongs to."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    alarm_id: str
    kind: Literal["once", "weekly"]
    next_fire_at: dt.datetime
    weekday: Optional[int] = None            # weekly only, 0=Sun..6=Sat
    time: Optional[str] = None               # weekly only, "HH:MM"
    payload: Dict[str, Any] = Field(default_factory=dict)
