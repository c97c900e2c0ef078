"""
Run coordinator: scan every user, send due quest reminders, aggregate results
"""
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import datetime, timezone as dt_timezone
from typing import Any, Dict, List, Optional
import json
import logging
import time

from .cleanup import RegistrationCleaner
from .composer import compose_notification
from .config import settings
from .dedup import SlotDeduplicator, slot_key
from .metrics import (
    scheduler_dispatched_total,
    scheduler_last_run_timestamp,
    scheduler_runs_total,
    scheduler_users_scanned_total,
    slots_suppressed_total,
    user_errors_total,
)
from .recurrence_models import filter_due
from .schemas import DedupState
from .timezone import local_parts, to_utc_aware

logger = logging.getLogger(__name__)


SENT = "sent"
SKIPPED = "skipped"
SUPPRESSED = "suppressed"
ERROR = "error"
ABANDONED = "abandoned"


@dataclass
class UserOutcome:
    """What happened for one user in one run"""
    user_id: str
    status: str
    reason: Optional[str] = None
    slot_key: Optional[str] = None
    due_count: int = 0
    sent: int = 0
    failed: int = 0
    removed_tokens: List[str] = field(default_factory=list)
    error: Optional[str] = None


@dataclass
class RunSummary:
    started_at: datetime
    outcomes: List[UserOutcome] = field(default_factory=list)

    @property
    def reminders_sent(self) -> int:
        return sum(o.sent for o in self.outcomes)

    @property
    def failures(self) -> List[Dict[str, Any]]:
        return [{"uid": o.user_id, "failureCount": o.failed} for o in self.outcomes if o.failed > 0]

    @property
    def failure_users(self) -> int:
        return len(self.failures)

    def count(self, status: str) -> int:
        return sum(1 for o in self.outcomes if o.status == status)

    def to_log_record(self) -> Dict[str, Any]:
        return {
            "remindersSent": self.reminders_sent,
            "failureUsers": self.failure_users,
            "failures": self.failures,
            "usersProcessed": len(self.outcomes),
            "batchesSent": self.count(SENT),
            "usersErrored": self.count(ERROR),
            "usersAbandoned": self.count(ABANDONED),
        }


class ReminderRunCoordinator:
    """Process every user independently on a bounded worker pool.

    ``repository`` is the document store adapter (see
    ``FirestoreReminderRepository``) and ``dispatcher`` a ``PushDispatcher``;
    both are constructed once by the caller and shared across workers.
    """

    def __init__(
        self,
        repository,
        dispatcher,
        window_minutes: Optional[int] = None,
        max_workers: Optional[int] = None,
        run_timeout: Optional[float] = None,
    ):
        self._repository = repository
        self._dispatcher = dispatcher
        self._dedup = SlotDeduplicator(repository)
        self._cleaner = RegistrationCleaner(repository)
        self._window_minutes = window_minutes or settings.WINDOW_MINUTES
        self._max_workers = max_workers or settings.WORKER_CONCURRENCY
        self._run_timeout = run_timeout if run_timeout is not None else settings.RUN_TIMEOUT_SECONDS

    def run(self, now: Optional[datetime] = None) -> RunSummary:
        """Run one scan. Only a failure to enumerate users propagates."""
        now = to_utc_aware(now) or datetime.now(dt_timezone.utc)
        summary = RunSummary(started_at=now)

        user_ids = list(self._repository.list_user_ids())
        scheduler_runs_total.inc()
        scheduler_users_scanned_total.inc(len(user_ids))
        logger.info(f"[Reminders] Scan at {now.isoformat()} for {len(user_ids)} users")

        if user_ids:
            executor = ThreadPoolExecutor(max_workers=self._max_workers, thread_name_prefix="reminders")
            try:
                futures = {executor.submit(self.process_user, uid, now): uid for uid in user_ids}
                done, not_done = wait(futures, timeout=self._run_timeout)
                for future in done:
                    summary.outcomes.append(future.result())
                for future in not_done:
                    future.cancel()
                    summary.outcomes.append(UserOutcome(user_id=futures[future], status=ABANDONED))
                if not_done:
                    logger.warning(
                        f"[Reminders] Run deadline of {self._run_timeout}s reached; "
                        f"abandoned {len(not_done)} users"
                    )
            finally:
                executor.shutdown(wait=False, cancel_futures=True)

        scheduler_last_run_timestamp.set(time.time())
        logger.info(f"[Reminders] Reminder scheduler run complete. {json.dumps(summary.to_log_record())}")
        return summary

    def process_user(self, user_id: str, now: datetime) -> UserOutcome:
        """Error boundary around one user's work."""
        try:
            return self._process_user(user_id, now)
        except Exception as e:
            user_errors_total.inc()
            logger.exception(f"[Reminders] Failed to process user {user_id}: {e!r}")
            return UserOutcome(user_id=user_id, status=ERROR, error=repr(e))

    def _process_user(self, user_id: str, now: datetime) -> UserOutcome:
        profile = self._repository.get_profile(user_id)
        if profile is None:
            return self._skip(user_id, "no_profile")

        local_now = local_parts(now, profile.time_zone)
        due = filter_due(profile.quests, local_now, self._window_minutes)
        if not due:
            return self._skip(user_id, "nothing_due")

        key = slot_key(local_now)
        if self._dedup.already_sent(user_id, key):
            slots_suppressed_total.inc()
            return UserOutcome(user_id=user_id, status=SUPPRESSED, slot_key=key, due_count=len(due))

        devices = self._repository.list_push_devices(user_id)
        if not devices:
            return self._skip(user_id, "no_devices", key)

        notification = compose_notification([r.title for r in due], key)

        claim = self._dedup.claim(user_id, key)
        if not claim.acquired:
            # another run got here first
            slots_suppressed_total.inc()
            return UserOutcome(user_id=user_id, status=SUPPRESSED, slot_key=key, due_count=len(due))

        try:
            result = self._dispatcher.send([d.token for d in devices], notification)
        except Exception:
            self._release(claim)
            raise

        removed = self._cleaner.clean(user_id, devices, result)
        self._repository.save_state(
            user_id,
            DedupState(
                last_slot_key=key,
                due_count=len(due),
                sent_count=result.success_count,
                time_zone=profile.time_zone,
            ),
        )
        scheduler_dispatched_total.inc()
        return UserOutcome(
            user_id=user_id,
            status=SENT,
            slot_key=key,
            due_count=len(due),
            sent=result.success_count,
            failed=result.failure_count,
            removed_tokens=removed,
        )

    def _release(self, claim) -> None:
        try:
            self._dedup.release(claim)
        except Exception as e:
            logger.error(f"[Reminders] Could not release slot {claim.slot_key} for user {claim.user_id}: {e!r}")

    @staticmethod
    def _skip(user_id: str, reason: str, key: Optional[str] = None) -> UserOutcome:
        logger.debug(f"[Reminders] Skipping user {user_id}: {reason}")
        return UserOutcome(user_id=user_id, status=SKIPPED, reason=reason, slot_key=key)
