import logging
from typing import List, Sequence

from .dispatcher import DispatchResult
from .metrics import devices_removed_total
from .schemas import Device

logger = logging.getLogger(__name__)

# Only these prove the registration is gone; everything else is retryable
PERMANENT_ERROR_CODES = frozenset({
    "invalid-registration-token",
    "registration-token-not-registered",
})


class RegistrationCleaner:
    """Delete device registrations whose tokens FCM reports as permanently invalid"""

    def __init__(self, repository):
        self._repository = repository

    @staticmethod
    def stale_devices(devices: Sequence[Device], result: DispatchResult) -> List[Device]:
        """Devices whose dispatch outcome carries a permanent error code.

        ``devices`` must be in the same order as the tokens that were sent.
        """
        stale = []
        for device, outcome in zip(devices, result.outcomes):
            if not outcome.success and outcome.error_code in PERMANENT_ERROR_CODES:
                stale.append(device)
        return stale

    def clean(self, user_id: str, devices: Sequence[Device], result: DispatchResult) -> List[str]:
        """Remove stale registrations for one user in a single batch.

        Returns the removed tokens. A failed delete is logged and reported as
        nothing removed; it never raises.
        """
        stale = self.stale_devices(devices, result)
        if not stale:
            return []
        try:
            self._repository.delete_devices(user_id, [d.id for d in stale])
        except Exception as e:
            logger.warning(f"[Cleanup] Failed to delete {len(stale)} stale devices for user {user_id}: {e!r}")
            return []
        devices_removed_total.inc(len(stale))
        logger.info(f"[Cleanup] Removed {len(stale)} stale devices for user {user_id}")
        return [d.token for d in stale]
