"""
Firebase Admin SDK initialization and configuration.
Initializes Firebase Admin SDK once at application startup.
"""
import json
import os
import logging
from typing import Optional
import firebase_admin
from firebase_admin import credentials, auth
from starlette.concurrency import run_in_threadpool

from stylizer.config import settings

logger = logging.getLogger(__name__)


# Global Firebase app instance
_firebase_app: Optional[firebase_admin.App] = None


def _load_credentials():
    """
    Resolve Firebase credentials.

    Supports:
    1. FIREBASE_CREDENTIALS_JSON as file path
    2. FIREBASE_CREDENTIALS_JSON as JSON string (service account key)
    3. Application default credentials (GOOGLE_APPLICATION_CREDENTIALS or gcloud)
    """
    raw = settings.firebase_credentials_json
    if not raw:
        return credentials.ApplicationDefault()

    if os.path.exists(raw):
        logger.info(f"Loaded Firebase credentials from file: {raw}")
        return credentials.Certificate(raw)

    try:
        cred_dict = json.loads(raw)
    except json.JSONDecodeError:
        raise ValueError(
            "FIREBASE_CREDENTIALS_JSON must be a valid file path or JSON string"
        )

    # Keys pasted into hosting dashboards often carry escaped newlines
    if cred_dict.get("private_key"):
        cred_dict["private_key"] = cred_dict["private_key"].replace("\\n", "\n")
    logger.info("Loaded Firebase credentials from JSON string")
    return credentials.Certificate(cred_dict)


def initialize_firebase() -> None:
    """Initialize Firebase Admin SDK (idempotent)."""
    global _firebase_app

    if _firebase_app is not None:
        return

    if not settings.firebase_project_id:
        raise ValueError("FIREBASE_PROJECT_ID must be set")

    _firebase_app = firebase_admin.initialize_app(
        _load_credentials(),
        {"projectId": settings.firebase_project_id}
    )
    logger.info("Firebase Admin SDK initialized", extra={"event": "firebase_initialized"})


def verify_firebase_token(token: str) -> dict:
    """
    Verify Firebase ID token and return decoded token claims.

    Args:
        token: Firebase JWT ID token string

    Returns:
        Decoded token claims dict with uid, email, etc.

    Raises:
        ValueError: If token is invalid, expired, or revoked
        RuntimeError: If the SDK was never initialized
    """
    if _firebase_app is None:
        raise RuntimeError("Firebase Admin SDK not initialized. Call initialize_firebase() first.")

    try:
        # Checks signature, expiration, issuer and audience
        return auth.verify_id_token(token, app=_firebase_app)
    except ValueError:
        raise
    except Exception as e:
        raise ValueError(f"Token verification failed: {str(e)}")


async def verify_token(token: str) -> dict:
    """Verify a token without blocking the event loop (the SDK is synchronous)."""
    return await run_in_threadpool(verify_firebase_token, token)
