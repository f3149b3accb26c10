"""Result stores for finished correction jobs."""
from __future__ import annotations

import logging
from typing import Optional

from corrector.config import CorrectorSettings, get_settings
from corrector.errors import PersistenceError

from .base import ResultStore, build_record
from .firestore_store import FirestoreResultStore
from .json_store import JSONFileResultStore
from .memory_store import InMemoryResultStore

LOGGER = logging.getLogger(__name__)

_STORE: Optional[ResultStore] = None


def create_result_store(settings: CorrectorSettings) -> ResultStore:
    """Build the store selected by ``settings.result_store``."""

    backend = settings.result_store
    if backend == "memory":
        LOGGER.warning("RESULT_STORE=memory; results are lost when the process exits.")
        return InMemoryResultStore()
    if backend == "json":
        return JSONFileResultStore(settings.result_store_dir)
    if backend == "firestore":
        return FirestoreResultStore(
            collection=settings.firestore_collection,
            service_account_json=settings.firebase_service_account_json,
        )
    raise PersistenceError(f"Unsupported result store: {backend}")


def get_result_store() -> ResultStore:
    """Return the process-wide result store, creating it on first use."""

    global _STORE

    if _STORE is None:
        _STORE = create_result_store(get_settings())
    return _STORE


__all__ = [
    "FirestoreResultStore",
    "InMemoryResultStore",
    "JSONFileResultStore",
    "ResultStore",
    "build_record",
    "create_result_store",
    "get_result_store",
]
