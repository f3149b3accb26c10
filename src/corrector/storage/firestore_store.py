"""Correction records kept in a Cloud Firestore collection, one document per job."""
from __future__ import annotations

import asyncio
import base64
import binascii
import json
import logging
from typing import Any, Optional, Sequence

import firebase_admin
from firebase_admin import credentials, firestore
from google.api_core import exceptions as google_exceptions

from corrector.errors import PersistenceError
from corrector.models import Correction, DocumentMetadata

from .base import ResultStore, build_record

LOGGER = logging.getLogger(__name__)

DEFAULT_COLLECTION = "ai-documents-v2"
_APP_NAME = "manuscript-corrector"


def decode_service_account(encoded: Optional[str]) -> dict[str, Any]:
    """Decode the base64 service account JSON from ``FIREBASE_SERVICE_ACCOUNT_JSON``."""

    if not encoded:
        raise PersistenceError("FIREBASE_SERVICE_ACCOUNT_JSON is not set")
    try:
        account = json.loads(base64.b64decode(encoded, validate=True).decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, ValueError) as error:
        raise PersistenceError("FIREBASE_SERVICE_ACCOUNT_JSON is not base64-encoded JSON", cause=error) from error
    if not isinstance(account, dict):
        raise PersistenceError("FIREBASE_SERVICE_ACCOUNT_JSON must decode to a JSON object")
    return account


def _client_from_service_account(encoded: Optional[str]):
    account = decode_service_account(encoded)
    try:
        app = firebase_admin.get_app(_APP_NAME)
    except ValueError:
        try:
            app = firebase_admin.initialize_app(credentials.Certificate(account), name=_APP_NAME)
        except (ValueError, google_exceptions.GoogleAPIError) as error:
            raise PersistenceError("Invalid Firebase service account", cause=error) from error
    LOGGER.info("Firebase app initialised for project %s", account.get("project_id"))
    return firestore.client(app)


class FirestoreResultStore(ResultStore):
    """Set ``<collection>/<job_id>`` to the job record, replacing any previous one.

    ``client`` is anything shaped like ``google.cloud.firestore.Client``; when omitted
    it is built from the service account on first use.
    """

    name = "firestore"

    def __init__(
        self,
        *,
        collection: str = DEFAULT_COLLECTION,
        client: Any = None,
        service_account_json: Optional[str] = None,
    ) -> None:
        self.collection = collection
        self._client = client
        self._service_account_json = service_account_json

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = _client_from_service_account(self._service_account_json)
        return self._client

    def _document(self, job_id: str):
        if not job_id:
            raise PersistenceError("Invalid job id for storage: ''")
        return self.client.collection(self.collection).document(job_id)

    async def save_corrections(
        self,
        job_id: str,
        corrections: Sequence[Correction],
        metadata: DocumentMetadata,
    ) -> None:
        record = build_record(corrections, metadata)
        document = self._document(job_id)
        try:
            await asyncio.to_thread(document.set, record)
        except (google_exceptions.GoogleAPIError, ValueError, TypeError) as error:
            raise PersistenceError(f"Failed to save corrections for job {job_id}", cause=error) from error
        LOGGER.info(
            "Saved %s corrections for job %s to Firestore collection %s",
            len(corrections),
            job_id,
            self.collection,
        )

    async def load(self, job_id: str) -> Optional[dict[str, Any]]:
        document = self._document(job_id)
        try:
            snapshot = await asyncio.to_thread(document.get)
        except google_exceptions.GoogleAPIError as error:
            raise PersistenceError(f"Failed to load corrections for job {job_id}", cause=error) from error
        if not snapshot.exists:
            return None
        return snapshot.to_dict()


__all__ = ["DEFAULT_COLLECTION", "FirestoreResultStore", "decode_service_account"]
