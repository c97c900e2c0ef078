from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from .config import settings
from .dedup import notification_tag


REMINDER_TYPE = "quest_reminder"
MAX_LISTED_TITLES = 3


@dataclass(frozen=True)
class ComposedNotification:
    title: str
    body: str
    tag: str
    data: Dict[str, str] = field(default_factory=dict)


def compose_body(titles: Iterable[str]) -> str:
    names: List[str] = [t.strip() for t in titles if t and t.strip()]
    if len(names) <= 1:
        return f"Time for: {names[0] if names else 'your task'}"
    listed = ", ".join(names[:MAX_LISTED_TITLES])
    suffix = "..." if len(names) > MAX_LISTED_TITLES else ""
    return f"Due now: {listed}{suffix}"


def compose_notification(titles: Iterable[str], slot_key: str) -> ComposedNotification:
    """Build the single push for a user's due reminders in one slot."""
    body = compose_body(titles)
    return ComposedNotification(
        title=settings.NOTIFICATION_TITLE,
        body=body,
        tag=notification_tag(slot_key),
        data={
            "type": REMINDER_TYPE,
            "slotKey": slot_key,
            "body": body,
            "screen": settings.TARGET_SCREEN,
        },
    )
