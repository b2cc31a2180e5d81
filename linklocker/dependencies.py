"""
Dependency wiring for the FastAPI app and scripts.
"""

from __future__ import annotations

import logging

import firebase_admin
from firebase_admin import credentials, firestore_async

from linklocker.config import Settings, get_settings
from linklocker.local_storage import FileLocalStorage, LocalStorage
from linklocker.store import DocumentStore, FirestoreDocumentStore, InMemoryDocumentStore

logger = logging.getLogger(__name__)

_document_store: DocumentStore | None = None
_local_storage: LocalStorage | None = None


def _firebase_app(settings: Settings) -> firebase_admin.App:
    try:
        return firebase_admin.get_app()
    except ValueError:
        pass

    cred = None
    if settings.firebase_credentials_path:
        cred = credentials.Certificate(settings.firebase_credentials_path)
    options = {"projectId": settings.firebase_project_id}
    return firebase_admin.initialize_app(cred, options)


def get_document_store() -> DocumentStore:
    """
    Return a singleton document store so in-memory data persists across requests.
    """
    global _document_store
    if _document_store:
        return _document_store

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.firebase_project_id:
        logger.info("Using in-memory document store")
        _document_store = InMemoryDocumentStore()
    else:
        client = firestore_async.client(_firebase_app(settings))
        _document_store = FirestoreDocumentStore(client)
    return _document_store


def get_local_storage() -> LocalStorage:
    global _local_storage
    if _local_storage:
        return _local_storage

    settings = get_settings()
    _local_storage = FileLocalStorage(settings.session_storage_path)
    return _local_storage
