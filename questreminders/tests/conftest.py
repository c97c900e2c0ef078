"""Shared fixtures: an in-memory reminder store and fake FCM responses."""

from __future__ import annotations

import threading
from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Any

import pytest

from questreminders.dedup import SlotClaim
from questreminders.dispatcher import DispatchResult, TokenOutcome
from questreminders.schemas import DedupState, Device, UserProfile

TEST_USER_ID = "user-1"

# 2026-03-02 is a Monday; 19:02 UTC is 14:02 in New York (EST, UTC-5)
NY_AFTERNOON = datetime(2026, 3, 2, 19, 2, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# In-memory store
# ---------------------------------------------------------------------------


class InMemoryReminderRepository:
    """Dict-backed stand-in for FirestoreReminderRepository."""

    def __init__(self) -> None:
        self.profiles: dict[str, dict[str, Any]] = {}
        self.devices: dict[str, dict[str, dict[str, Any]]] = {}
        self.states: dict[str, dict[str, Any]] = {}
        self.deleted: list[tuple[str, str]] = []
        self.fail_profile_for: set[str] = set()
        self.fail_delete = False
        self._lock = threading.Lock()

    # -- builders -----------------------------------------------------------

    def add_user(
        self,
        user_id: str,
        quests: list[dict[str, Any]] | None = None,
        time_zone: str | None = "UTC",
        devices: dict[str, dict[str, Any]] | None = None,
    ) -> None:
        profile: dict[str, Any] = {"quests": quests or []}
        if time_zone is not None:
            profile["timeZone"] = time_zone
        self.profiles[user_id] = profile
        self.devices[user_id] = dict(devices or {})

    # -- repository interface -----------------------------------------------

    def list_user_ids(self):
        return iter(sorted(set(self.profiles) | set(self.devices)))

    def get_profile(self, user_id: str) -> UserProfile | None:
        if user_id in self.fail_profile_for:
            raise RuntimeError(f"store unavailable for {user_id}")
        data = self.profiles.get(user_id)
        return None if data is None else UserProfile.model_validate(data)

    def get_state(self, user_id: str) -> DedupState:
        return DedupState.model_validate(self.states.get(user_id, {}))

    def list_push_devices(self, user_id: str) -> list[Device]:
        result = []
        for device_id, data in self.devices.get(user_id, {}).items():
            if data.get("pushEnabled") is True and data.get("token"):
                result.append(Device.model_validate({**data, "id": device_id}))
        return result

    def claim_slot(self, user_id: str, slot_key: str) -> SlotClaim:
        with self._lock:
            state = self.states.setdefault(user_id, {})
            previous = str(state.get("lastSlotKey") or "")
            if previous == slot_key:
                return SlotClaim(user_id, slot_key, acquired=False, previous_slot_key=previous)
            state["lastSlotKey"] = slot_key
            return SlotClaim(user_id, slot_key, acquired=True, previous_slot_key=previous)

    def release_slot(self, user_id: str, slot_key: str, previous_slot_key: str) -> bool:
        with self._lock:
            state = self.states.setdefault(user_id, {})
            if state.get("lastSlotKey") != slot_key:
                return False
            state["lastSlotKey"] = previous_slot_key
            return True

    def save_state(self, user_id: str, state: DedupState) -> None:
        with self._lock:
            merged = self.states.setdefault(user_id, {})
            merged.update(state.to_document())
            merged["updatedAt"] = "SERVER_TIMESTAMP"

    def delete_devices(self, user_id: str, device_ids) -> None:
        if self.fail_delete:
            raise RuntimeError("batch commit failed")
        for device_id in device_ids:
            self.devices[user_id].pop(device_id, None)
            self.deleted.append((user_id, device_id))


class RecordingDispatcher:
    """PushDispatcher stand-in that records calls and fails chosen tokens."""

    def __init__(self, errors: dict[str, str] | None = None, raise_exc: Exception | None = None) -> None:
        self.errors = errors or {}
        self.raise_exc = raise_exc
        self.calls: list[tuple[list[str], Any]] = []
        self._lock = threading.Lock()

    def send(self, tokens, notification) -> DispatchResult:
        with self._lock:
            self.calls.append((list(tokens), notification))
        if self.raise_exc is not None:
            raise self.raise_exc
        return DispatchResult(outcomes=[
            TokenOutcome(token=t, success=False, error_code=self.errors[t])
            if t in self.errors
            else TokenOutcome(token=t, success=True, message_id=f"msg-{t}")
            for t in tokens
        ])


def quest(title: str = "Slay 10 goblins", time: str = "14:00", days: Any = "", on: Any = True) -> dict[str, Any]:
    return {"title": title, "reminderOn": on, "reminderTime": time, "reminderDays": days}


def device(token: str, enabled: bool = True, platform: str = "web") -> dict[str, Any]:
    return {"token": token, "platform": platform, "pushEnabled": enabled}


def send_response(message_id: str | None = None, exception: Exception | None = None) -> SimpleNamespace:
    """Shape of firebase_admin.messaging.SendResponse."""
    return SimpleNamespace(success=exception is None, message_id=message_id, exception=exception)


def batch_response(responses: list[SimpleNamespace]) -> SimpleNamespace:
    """Shape of firebase_admin.messaging.BatchResponse."""
    ok = sum(1 for r in responses if r.success)
    return SimpleNamespace(responses=responses, success_count=ok, failure_count=len(responses) - ok)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def repository() -> InMemoryReminderRepository:
    return InMemoryReminderRepository()


@pytest.fixture
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()
