from dataclasses import dataclass, field
from typing import List, Optional, Sequence
import logging

from firebase_admin import exceptions, messaging  # type: ignore

from .composer import ComposedNotification
from .config import settings
from .metrics import reminders_dispatch_success_total, reminders_dispatch_failed_total

logger = logging.getLogger(__name__)

# FCM rejects multicast requests with more tokens than this
MULTICAST_LIMIT = 500

UNKNOWN_ERROR = "unknown-error"

_CANONICAL_ERROR_CODES = {
    exceptions.NOT_FOUND: "registration-token-not-registered",
    exceptions.INTERNAL: "internal-error",
    exceptions.UNAVAILABLE: "server-unavailable",
    exceptions.RESOURCE_EXHAUSTED: "message-rate-exceeded",
    exceptions.UNAUTHENTICATED: "authentication-error",
    exceptions.PERMISSION_DENIED: "mismatched-credential",
    exceptions.DEADLINE_EXCEEDED: "deadline-exceeded",
}


def error_code_for(exc: Optional[BaseException]) -> str:
    """Map a per-token firebase_admin error to a gateway error code."""
    if isinstance(exc, messaging.UnregisteredError):
        return "registration-token-not-registered"
    if isinstance(exc, messaging.SenderIdMismatchError):
        return "mismatched-credential"
    if isinstance(exc, messaging.QuotaExceededError):
        return "message-rate-exceeded"
    if isinstance(exc, messaging.ThirdPartyAuthError):
        return "third-party-auth-error"
    if isinstance(exc, exceptions.FirebaseError):
        if exc.code == exceptions.INVALID_ARGUMENT:
            if "registration token" in str(exc).lower():
                return "invalid-registration-token"
            return "invalid-argument"
        return _CANONICAL_ERROR_CODES.get(exc.code, UNKNOWN_ERROR)
    return UNKNOWN_ERROR


@dataclass(frozen=True)
class TokenOutcome:
    token: str
    success: bool
    error_code: Optional[str] = None
    message_id: Optional[str] = None


@dataclass
class DispatchResult:
    """Per-token outcomes in the same order as the tokens passed to ``send``."""
    outcomes: List[TokenOutcome] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        return sum(1 for o in self.outcomes if o.success)

    @property
    def failure_count(self) -> int:
        return len(self.outcomes) - self.success_count


class PushDispatcher:
    """Send one multicast push per user through FCM"""

    def __init__(self, app=None, web_app_url: Optional[str] = None, icon: Optional[str] = None):
        self._app = app
        self._web_app_url = web_app_url if web_app_url is not None else settings.WEB_APP_URL
        self._icon = icon or settings.NOTIFICATION_ICON

    def _click_link(self, screen: str) -> Optional[str]:
        # FCM only accepts https links for web push click-through
        if not self._web_app_url or not self._web_app_url.startswith("https://"):
            return None
        return f"{self._web_app_url.rstrip('/')}/index.html#{screen}"

    def build_message(self, tokens: Sequence[str], notification: ComposedNotification) -> messaging.MulticastMessage:
        link = self._click_link(notification.data.get("screen", settings.TARGET_SCREEN))
        return messaging.MulticastMessage(
            tokens=list(tokens),
            notification=messaging.Notification(title=notification.title, body=notification.body),
            data=dict(notification.data),
            webpush=messaging.WebpushConfig(
                headers={"Urgency": "high"},
                notification=messaging.WebpushNotification(
                    title=notification.title,
                    body=notification.body,
                    icon=self._icon,
                    badge=self._icon,
                    tag=notification.tag,
                    renotify=True,
                ),
                fcm_options=messaging.WebpushFCMOptions(link=link) if link else None,
            ),
            android=messaging.AndroidConfig(
                priority="high",
                notification=messaging.AndroidNotification(tag=notification.tag, default_sound=True),
            ),
            apns=messaging.APNSConfig(
                headers={
                    "apns-push-type": "alert",
                    "apns-priority": "10",
                    "apns-collapse-id": notification.tag,  # replace rather than stack per slot
                }
            ),
        )

    def send(self, tokens: Sequence[str], notification: ComposedNotification) -> DispatchResult:
        """Multicast ``notification`` to ``tokens``.

        Per-token failures are reported in the result, never raised. A request
        level failure raises only if nothing has been sent yet; later chunks
        that fail are reported as failed tokens instead.
        """
        result = DispatchResult()
        if not tokens:
            return result

        for start in range(0, len(tokens), MULTICAST_LIMIT):
            chunk = list(tokens[start:start + MULTICAST_LIMIT])
            message = self.build_message(chunk, notification)
            try:
                batch = messaging.send_each_for_multicast(message, app=self._app)
            except exceptions.FirebaseError as e:
                if not result.outcomes:
                    raise
                code = error_code_for(e)
                logger.error(f"[FCM] Multicast chunk of {len(chunk)} failed after partial send: {e!r}")
                result.outcomes.extend(TokenOutcome(token=t, success=False, error_code=code) for t in chunk)
                continue

            for token, resp in zip(chunk, batch.responses):
                if resp.success:
                    result.outcomes.append(TokenOutcome(token=token, success=True, message_id=resp.message_id))
                else:
                    result.outcomes.append(
                        TokenOutcome(token=token, success=False, error_code=error_code_for(resp.exception))
                    )

        reminders_dispatch_success_total.inc(result.success_count)
        reminders_dispatch_failed_total.inc(result.failure_count)
        logger.debug(
            f"[FCM] Sent tag={notification.tag} success={result.success_count} failed={result.failure_count}"
        )
        return result
