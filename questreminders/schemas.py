"""
Document schemas for users, reminders, devices and dedup state
"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


DEFAULT_TIMEZONE = "UTC"


class Reminder(BaseModel):
    """A recurring quest reminder as stored on the user's profile"""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    title: str = ""
    reminder_on: bool = Field(default=False, alias="reminderOn")
    reminder_time: str = Field(default="", alias="reminderTime")
    reminder_days: str = Field(default="", alias="reminderDays")

    @field_validator("title", "reminder_time", mode="before")
    @classmethod
    def _coerce_text(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator("reminder_on", mode="before")
    @classmethod
    def _only_literal_true(cls, v: Any) -> bool:
        return v is True

    @field_validator("reminder_days", mode="before")
    @classmethod
    def _join_days(cls, v: Any) -> str:
        if v is None:
            return ""
        if isinstance(v, (list, tuple, set)):
            return ",".join(str(d) for d in v)
        return str(v)


class UserProfile(BaseModel):
    """Profile document: timezone plus the user's reminders"""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    time_zone: str = Field(default=DEFAULT_TIMEZONE, alias="timeZone")
    quests: List[Reminder] = Field(default_factory=list)

    @field_validator("time_zone", mode="before")
    @classmethod
    def _default_timezone(cls, v: Any) -> str:
        if isinstance(v, str) and v:
            return v
        return DEFAULT_TIMEZONE

    @field_validator("quests", mode="before")
    @classmethod
    def _drop_malformed(cls, v: Any) -> List[Dict[str, Any]]:
        if not isinstance(v, list):
            return []
        return [q for q in v if isinstance(q, dict)]


class Device(BaseModel):
    """A push registration under users/{uid}/devices"""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    token: str = ""
    platform: str = ""
    push_enabled: bool = Field(default=False, alias="pushEnabled")

    @field_validator("token", "platform", mode="before")
    @classmethod
    def _coerce_text(cls, v: Any) -> str:
        return "" if v is None else str(v)


class DedupState(BaseModel):
    """Per-user record of the last slot a batch was sent for"""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    last_slot_key: str = Field(default="", alias="lastSlotKey")
    due_count: int = Field(default=0, alias="dueCount")
    sent_count: int = Field(default=0, alias="sentCount")
    time_zone: str = Field(default=DEFAULT_TIMEZONE, alias="timeZone")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")

    @field_validator("last_slot_key", mode="before")
    @classmethod
    def _coerce_slot(cls, v: Any) -> str:
        return "" if v is None else str(v)

    def to_document(self) -> Dict[str, Any]:
        """Fields written back with merge semantics (updatedAt is set by the store)."""
        return self.model_dump(by_alias=True, exclude={"updated_at"})
