"""Process-wide Firebase app lifecycle.

The Firebase app is initialised at most once per process. Callers obtain the
Firestore client through ``get_firestore_client`` and pass it (and the
messaging module) into the repository and dispatcher explicitly.
"""
import json
import logging
import os
import threading
from typing import Optional

from firebase_admin import credentials, firestore, initialize_app, _apps  # type: ignore

from .config import settings

logger = logging.getLogger(__name__)

_init_lock = threading.Lock()


def _resolve_credentials_source() -> Optional[str]:
    cfg_val = settings.FCM_CREDENTIALS_JSON
    env_gac_json = os.getenv("GOOGLE_APPLICATION_CREDENTIALS_JSON")
    env_gac = os.getenv("GOOGLE_APPLICATION_CREDENTIALS")
    logger.debug(
        "[FCM] Creds sources | REMINDER_FCM_CREDENTIALS_JSON set="
        f"{bool(cfg_val)}, GOOGLE_APPLICATION_CREDENTIALS_JSON set={bool(env_gac_json)}, "
        f"GOOGLE_APPLICATION_CREDENTIALS set={bool(env_gac)}"
    )
    return cfg_val or env_gac_json or env_gac


def ensure_firebase_initialized() -> None:
    """Initialise the default Firebase app once; later calls are no-ops."""
    if _apps:
        return
    with _init_lock:
        if _apps:
            return

        proj = settings.FCM_PROJECT_ID
        options = {"projectId": proj} if proj else None
        creds_json = (_resolve_credentials_source() or "").strip()
        logger.info(f"[FCM] Initializing Firebase | project_id={proj}")

        if creds_json.startswith("{"):
            initialize_app(credentials.Certificate(json.loads(creds_json)), options=options)
            logger.info("[FCM] Firebase app initialized (inline JSON)")
        elif creds_json and os.path.exists(creds_json):
            initialize_app(credentials.Certificate(creds_json), options=options)
            logger.info(f"[FCM] Firebase app initialized (file {creds_json})")
        else:
            if creds_json:
                logger.warning(f"[FCM] Credentials file not found: {creds_json}; using application default")
            # Application default credentials (e.g. on GCP runtimes)
            initialize_app(options=options)
            logger.info("[FCM] Firebase app initialized (default credentials)")


def get_firestore_client():
    ensure_firebase_initialized()
    return firestore.client()
