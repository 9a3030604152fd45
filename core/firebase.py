import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Callable, Optional

import firebase_admin
from firebase_admin import auth as firebase_auth
from firebase_admin import credentials, firestore, storage

from core.config import Settings

logger = logging.getLogger(__name__)


@dataclass
class FirebaseServices:
    app: Any
    firestore_client: Any
    bucket: Optional[Any]
    verify_id_token: Callable[[str], dict]
    revoke_refresh_tokens: Callable[[str], None]


def _credential_from_env():
    """Service account credentials, in order of preference; None means Application Default Credentials."""

    # Method 1: Service Account Key from Environment Variable (Recommended for production)
    service_account_key_json = os.getenv("FIREBASE_SERVICE_ACCOUNT_KEY")
    if service_account_key_json:
        try:
            return credentials.Certificate(json.loads(service_account_key_json))
        except (json.JSONDecodeError, ValueError) as e:
            logger.error(f"Error parsing FIREBASE_SERVICE_ACCOUNT_KEY: {e}")

    # Method 2: Service Account Key File (for local development only)
    service_account_key_path = os.getenv("FIREBASE_SERVICE_ACCOUNT_KEY_PATH")
    if service_account_key_path and os.path.exists(service_account_key_path):
        return credentials.Certificate(service_account_key_path)

    # Method 3/4: GOOGLE_APPLICATION_CREDENTIALS or ambient default credentials
    return None


def initialize_firebase(settings: Settings) -> FirebaseServices:
    """Initialize Firebase Admin SDK and hand back the clients the app needs."""
    options = {}
    if settings.storage_bucket:
        options["storageBucket"] = settings.storage_bucket

    try:
        app = firebase_admin.get_app()
    except ValueError:
        cred = _credential_from_env()
        if cred is not None:
            app = firebase_admin.initialize_app(cred, options)
            logger.info("Firebase Admin SDK initialized with a service account key.")
        else:
            app = firebase_admin.initialize_app(options=options)
            logger.info("Firebase Admin SDK initialized with Application Default Credentials.")

    bucket = storage.bucket(app=app) if settings.storage_bucket else None
    if bucket is None:
        logger.warning("FIREBASE_STORAGE_BUCKET is not set; evidence photo uploads will fail.")

    return FirebaseServices(
        app=app,
        firestore_client=firestore.client(app=app),
        bucket=bucket,
        verify_id_token=lambda token: firebase_auth.verify_id_token(token, app=app),
        revoke_refresh_tokens=lambda uid: firebase_auth.revoke_refresh_tokens(uid, app=app),
    )


def shutdown_firebase(services: FirebaseServices) -> None:
    firebase_admin.delete_app(services.app)
