import threading
from typing import Optional

from celery import shared_task
from celery.utils.log import get_task_logger

from .config import settings
from .dispatcher import PushDispatcher
from .firebase import get_firestore_client
from .repository import FirestoreReminderRepository
from .service import ReminderRunCoordinator

logger = get_task_logger(__name__)

_coordinator: Optional[ReminderRunCoordinator] = None
_coordinator_lock = threading.Lock()


def build_coordinator() -> ReminderRunCoordinator:
    """Wire Firestore, FCM and settings into a coordinator."""
    return ReminderRunCoordinator(
        repository=FirestoreReminderRepository(get_firestore_client()),
        dispatcher=PushDispatcher(web_app_url=settings.WEB_APP_URL),
        window_minutes=settings.WINDOW_MINUTES,
        max_workers=settings.WORKER_CONCURRENCY,
        run_timeout=settings.RUN_TIMEOUT_SECONDS,
    )


def get_coordinator() -> ReminderRunCoordinator:
    """Coordinator built once per worker process."""
    global _coordinator
    if _coordinator is None:
        with _coordinator_lock:
            if _coordinator is None:
                _coordinator = build_coordinator()
    return _coordinator


@shared_task(name="reminders.send_due")
def send_due_reminders_task() -> dict:
    """Scan all users and push due quest reminders. Returns the run summary."""
    summary = get_coordinator().run()
    record = summary.to_log_record()
    logger.info(f"Reminder scan finished: {record}")
    return record
