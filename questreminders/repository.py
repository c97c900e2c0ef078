from typing import Iterator, List, Optional, Sequence

from firebase_admin import firestore  # type: ignore

from .dedup import SlotClaim
from .schemas import DedupState, Device, UserProfile


USERS = "users"
PROFILE = "profile"
PROFILE_DOC = "main"
DEVICES = "devices"
NOTIFICATIONS = "notifications"
STATE_DOC = "reminderState"


@firestore.transactional
def _claim_in_transaction(transaction, ref, slot_key: str):
    snap = ref.get(transaction=transaction)
    previous = str((snap.to_dict() or {}).get("lastSlotKey") or "") if snap.exists else ""
    if previous == slot_key:
        return False, previous
    transaction.set(ref, {"lastSlotKey": slot_key}, merge=True)
    return True, previous


@firestore.transactional
def _release_in_transaction(transaction, ref, slot_key: str, previous_slot_key: str) -> bool:
    snap = ref.get(transaction=transaction)
    current = str((snap.to_dict() or {}).get("lastSlotKey") or "") if snap.exists else ""
    if current != slot_key:
        return False
    transaction.set(ref, {"lastSlotKey": previous_slot_key}, merge=True)
    return True


class FirestoreReminderRepository:
    """Users, reminders, devices and dedup state in Firestore.

    Layout::

        users/{uid}/profile/main              timeZone, quests[]
        users/{uid}/devices/{deviceId}        token, platform, pushEnabled
        users/{uid}/notifications/reminderState   dedup state
    """

    def __init__(self, db):
        self._db = db

    def _user(self, user_id: str):
        return self._db.collection(USERS).document(user_id)

    def _state_ref(self, user_id: str):
        return self._user(user_id).collection(NOTIFICATIONS).document(STATE_DOC)

    def list_user_ids(self) -> Iterator[str]:
        # list_documents also returns users that only have subcollections
        for ref in self._db.collection(USERS).list_documents():
            yield ref.id

    def get_profile(self, user_id: str) -> Optional[UserProfile]:
        snap = self._user(user_id).collection(PROFILE).document(PROFILE_DOC).get()
        if not snap.exists:
            return None
        return UserProfile.model_validate(snap.to_dict() or {})

    def get_state(self, user_id: str) -> DedupState:
        snap = self._state_ref(user_id).get()
        if not snap.exists:
            return DedupState()
        return DedupState.model_validate(snap.to_dict() or {})

    def list_push_devices(self, user_id: str) -> List[Device]:
        """Push-enabled devices that carry a non-empty token."""
        query = self._user(user_id).collection(DEVICES).where(
            filter=firestore.FieldFilter("pushEnabled", "==", True)
        )
        devices = []
        for snap in query.stream():
            device = Device.model_validate({**(snap.to_dict() or {}), "id": snap.id})
            if device.token:
                devices.append(device)
        return devices

    def claim_slot(self, user_id: str, slot_key: str) -> SlotClaim:
        """Set ``lastSlotKey`` to ``slot_key`` only if it currently differs."""
        acquired, previous = _claim_in_transaction(self._db.transaction(), self._state_ref(user_id), slot_key)
        return SlotClaim(user_id=user_id, slot_key=slot_key, acquired=acquired, previous_slot_key=previous)

    def release_slot(self, user_id: str, slot_key: str, previous_slot_key: str) -> bool:
        """Restore ``previous_slot_key`` if ``lastSlotKey`` still holds ``slot_key``."""
        return _release_in_transaction(
            self._db.transaction(), self._state_ref(user_id), slot_key, previous_slot_key
        )

    def save_state(self, user_id: str, state: DedupState) -> None:
        self._state_ref(user_id).set(
            {**state.to_document(), "updatedAt": firestore.SERVER_TIMESTAMP},
            merge=True,
        )

    def delete_devices(self, user_id: str, device_ids: Sequence[str]) -> None:
        """Delete device documents for one user in a single atomic batch."""
        if not device_ids:
            return
        batch = self._db.batch()
        devices = self._user(user_id).collection(DEVICES)
        for device_id in device_ids:
            batch.delete(devices.document(device_id))
        batch.commit()
