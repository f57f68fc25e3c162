"""
KeepWise Backend — Firebase Admin App
======================================

What:  Lazily initializes the process-wide firebase-admin App.
How:   Uses a service account JSON file when FIREBASE_CREDENTIALS_PATH is set,
       otherwise builds the certificate from the three FIREBASE_* variables.
Who:   Shared by FirebaseTokenVerifier and FirestoreNoteStore, so both use
       the same credentials and the SDK is initialized only once.
"""

import logging
from typing import Any, Dict

import firebase_admin
from firebase_admin import credentials

from keepwise.config import Settings

logger = logging.getLogger(__name__)

_TOKEN_URI = "https://oauth2.googleapis.com/token"


def _service_account_info(config: Settings) -> Dict[str, Any]:
    return {
        "type": "service_account",
        "project_id": config.firebase_project_id,
        "client_email": config.firebase_client_email,
        # Keys pasted into env vars usually carry literal "\n" sequences
        "private_key": (config.firebase_private_key or "").replace("\\n", "\n"),
        "token_uri": _TOKEN_URI,
    }


def get_firebase_app(config: Settings) -> firebase_admin.App:
    """
    Return the default firebase-admin App, initializing it on first use.

    Raises:
        ValueError: Firebase credentials are not configured.
    """
    try:
        return firebase_admin.get_app()
    except ValueError:
        pass

    if not config.firebase_configured:
        raise ValueError("Firebase credentials are not configured")

    if config.firebase_credentials_path:
        cred = credentials.Certificate(config.firebase_credentials_path)
    else:
        cred = credentials.Certificate(_service_account_info(config))

    options = {"projectId": config.firebase_project_id} if config.firebase_project_id else None
    app = firebase_admin.initialize_app(cred, options)
    logger.info("firebase-admin initialized for project %s", app.project_id)
    return app
