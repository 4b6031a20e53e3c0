"""
Firebase initialization.
Single-source-of-truth Firestore client for SafeAlert.
"""

from typing import Optional
import json
import logging
import os

import firebase_admin
from firebase_admin import credentials, firestore, initialize_app

from safealert.core.settings import settings

logger = logging.getLogger(__name__)

db: Optional[firestore.Client] = None

REQUIRED_CREDENTIAL_FIELDS = ("type", "project_id", "private_key", "client_email")


def _validate_credentials_file(cred_path: str) -> None:
    if not os.path.exists(cred_path):
        raise FileNotFoundError(
            f"Firebase credentials file not found: {cred_path}\n"
            f"Please check your .env file and ensure FIREBASE_CREDENTIALS_PATH is correct.\n"
            f"Current working directory: {os.getcwd()}"
        )

    try:
        with open(cred_path, "r") as f:
            cred_data = json.load(f)
    except json.JSONDecodeError as e:
        raise ValueError(
            f"Firebase credentials file is not valid JSON: {e}\n"
            f"Please check the file at: {cred_path}"
        )

    missing_fields = [field for field in REQUIRED_CREDENTIAL_FIELDS if field not in cred_data]
    if missing_fields:
        raise ValueError(
            f"Firebase credentials file is missing required fields: {missing_fields}\n"
            f"Please download a fresh service account key from Firebase Console."
        )

    logger.info(f"[FIRESTORE] Credentials file validated: {cred_path} (project {cred_data.get('project_id', 'N/A')})")


def initialize_firestore() -> firestore.Client:
    """
    Initialize the Firebase Admin SDK (once) and return the Firestore client.

    Raises:
        RuntimeError: If credentials are missing or invalid
    """
    global db

    if db is not None:
        return db

    try:
        if not firebase_admin._apps:
            if settings.FIREBASE_CREDENTIALS_PATH:
                _validate_credentials_file(settings.FIREBASE_CREDENTIALS_PATH)
                cred = credentials.Certificate(settings.FIREBASE_CREDENTIALS_PATH)
                initialize_app(cred)
                logger.info("[FIRESTORE] Firebase Admin SDK initialized with service account")
            else:
                logger.info("[FIRESTORE] No credentials path set, using Application Default Credentials")
                initialize_app()

        db = firestore.client()
        logger.info(f"[FIRESTORE] Project: {settings.FIREBASE_PROJECT_ID or 'default'}")
        return db

    except FileNotFoundError as e:
        raise RuntimeError(
            f"Firestore initialization FAILED - Credentials file not found.\n"
            f"{str(e)}\n"
            f"SOLUTION: Check your .env file and ensure FIREBASE_CREDENTIALS_PATH points to a valid service account JSON file."
        )
    except ValueError as e:
        raise RuntimeError(
            f"Firestore initialization FAILED - Invalid credentials file.\n"
            f"{str(e)}\n"
            f"SOLUTION: Download a fresh service account key from Firebase Console:\n"
            f"1. Go to Firebase Console > Project Settings > Service Accounts\n"
            f"2. Click 'Generate New Private Key'\n"
            f"3. Save the JSON file and update FIREBASE_CREDENTIALS_PATH in .env"
        )
    except Exception as e:
        raise RuntimeError(
            f"Firestore initialization FAILED. Error: {e}\n"
            f"Please check your Firebase credentials and configuration."
        )


def get_db() -> firestore.Client:
    """
    Get the initialized Firestore client, initializing on first use.
    """
    if db is None:
        try:
            initialize_firestore()
        except Exception as e:
            raise RuntimeError(
                f"Firestore not initialized and initialization failed: {e}. "
                "Please check your Firebase credentials and configuration."
            )
    return db
