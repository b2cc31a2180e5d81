"""
Document store abstraction for Cloud Firestore and an in-memory test
implementation.
"""

from __future__ import annotations

import copy
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterator, Optional, Protocol

from google.api_core import exceptions
from google.cloud.firestore_v1 import SERVER_TIMESTAMP, ArrayUnion, Increment, Query
from google.cloud.firestore_v1.base_query import FieldFilter

from linklocker.errors import NotFound, StoreUnavailable

ASCENDING = Query.ASCENDING
DESCENDING = Query.DESCENDING


@dataclass
class StoredDocument:
    id: str
    data: dict


class DocumentStore(Protocol):
    """Operations the data layer needs from the document database.

    Write payloads may carry Firestore field transforms (`SERVER_TIMESTAMP`,
    `ArrayUnion`, `Increment`) as top-level values.
    """

    async def list_documents(
        self,
        collection: str,
        *,
        order_by: Optional[str] = None,
        direction: str = ASCENDING,
    ) -> list[StoredDocument]:
        ...

    async def find_documents(
        self, collection: str, field: str, value: Any
    ) -> list[StoredDocument]:
        ...

    async def get_document(
        self, collection: str, doc_id: str
    ) -> Optional[StoredDocument]:
        ...

    async def add_document(self, collection: str, data: dict) -> str:
        ...

    async def update_document(self, collection: str, doc_id: str, data: dict) -> None:
        ...

    async def set_document(
        self, collection: str, doc_id: str, data: dict, *, merge: bool = False
    ) -> None:
        ...

    async def delete_document(self, collection: str, doc_id: str) -> None:
        ...


@contextmanager
def _translate_errors(collection: str, doc_id: str = "") -> Iterator[None]:
    try:
        yield
    except exceptions.NotFound as exc:
        raise NotFound(collection, doc_id) from exc
    except (exceptions.GoogleAPICallError, exceptions.RetryError) as exc:
        raise StoreUnavailable(f"Firestore call on {collection} failed: {exc}") from exc


class FirestoreDocumentStore:
    """
    Firestore-backed implementation over `google.cloud.firestore.AsyncClient`.
    """

    def __init__(self, client):
        self._client = client

    async def list_documents(
        self,
        collection: str,
        *,
        order_by: Optional[str] = None,
        direction: str = ASCENDING,
    ) -> list[StoredDocument]:
        query = self._client.collection(collection)
        if order_by:
            query = query.order_by(order_by, direction=direction)
        with _translate_errors(collection):
            return [
                StoredDocument(id=snap.id, data=snap.to_dict() or {})
                async for snap in query.stream()
            ]

    async def find_documents(
        self, collection: str, field: str, value: Any
    ) -> list[StoredDocument]:
        query = self._client.collection(collection).where(
            filter=FieldFilter(field, "==", value)
        )
        with _translate_errors(collection):
            return [
                StoredDocument(id=snap.id, data=snap.to_dict() or {})
                async for snap in query.stream()
            ]

    async def get_document(
        self, collection: str, doc_id: str
    ) -> Optional[StoredDocument]:
        doc_ref = self._client.collection(collection).document(doc_id)
        with _translate_errors(collection, doc_id):
            snap = await doc_ref.get()
        if not snap.exists:
            return None
        return StoredDocument(id=snap.id, data=snap.to_dict() or {})

    async def add_document(self, collection: str, data: dict) -> str:
        with _translate_errors(collection):
            _, doc_ref = await self._client.collection(collection).add(data)
        return doc_ref.id

    async def update_document(self, collection: str, doc_id: str, data: dict) -> None:
        doc_ref = self._client.collection(collection).document(doc_id)
        with _translate_errors(collection, doc_id):
            await doc_ref.update(data)

    async def set_document(
        self, collection: str, doc_id: str, data: dict, *, merge: bool = False
    ) -> None:
        doc_ref = self._client.collection(collection).document(doc_id)
        with _translate_errors(collection, doc_id):
            await doc_ref.set(data, merge=merge)

    async def delete_document(self, collection: str, doc_id: str) -> None:
        doc_ref = self._client.collection(collection).document(doc_id)
        with _translate_errors(collection, doc_id):
            await doc_ref.delete()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryDocumentStore:
    """Simple in-memory document store for development and tests.

    Applies the same field transforms Firestore does: `SERVER_TIMESTAMP`
    becomes the current clock value, `ArrayUnion` appends values not already
    present, `Increment` adds to a numeric field (treating a missing field as
    zero). Updating a missing document raises `NotFound`.
    """

    def __init__(self, clock: Callable[[], datetime] = _utcnow):
        self.collections: Dict[str, Dict[str, dict]] = {}
        self.clock = clock

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        self.collections.clear()

    def _collection(self, name: str) -> Dict[str, dict]:
        return self.collections.setdefault(name, {})

    def _apply(self, existing: dict, data: dict) -> dict:
        result = copy.deepcopy(existing)
        for key, value in data.items():
            if value is SERVER_TIMESTAMP:
                result[key] = self.clock()
            elif isinstance(value, ArrayUnion):
                current = list(result.get(key) or [])
                for item in value.values:
                    if item not in current:
                        current.append(copy.deepcopy(item))
                result[key] = current
            elif isinstance(value, Increment):
                result[key] = (result.get(key) or 0) + value.value
            else:
                result[key] = copy.deepcopy(value)
        return result

    async def list_documents(
        self,
        collection: str,
        *,
        order_by: Optional[str] = None,
        direction: str = ASCENDING,
    ) -> list[StoredDocument]:
        items = [
            StoredDocument(id=doc_id, data=copy.deepcopy(data))
            for doc_id, data in self._collection(collection).items()
        ]
        if order_by:
            # Firestore leaves out documents that lack the ordering field.
            items = [item for item in items if item.data.get(order_by) is not None]
            items.sort(
                key=lambda item: item.data[order_by],
                reverse=direction == DESCENDING,
            )
        return items

    async def find_documents(
        self, collection: str, field: str, value: Any
    ) -> list[StoredDocument]:
        return [
            StoredDocument(id=doc_id, data=copy.deepcopy(data))
            for doc_id, data in self._collection(collection).items()
            if field in data and data[field] == value
        ]

    async def get_document(
        self, collection: str, doc_id: str
    ) -> Optional[StoredDocument]:
        data = self._collection(collection).get(doc_id)
        if data is None:
            return None
        return StoredDocument(id=doc_id, data=copy.deepcopy(data))

    async def add_document(self, collection: str, data: dict) -> str:
        doc_id = uuid.uuid4().hex[:20]
        self._collection(collection)[doc_id] = self._apply({}, data)
        return doc_id

    async def update_document(self, collection: str, doc_id: str, data: dict) -> None:
        docs = self._collection(collection)
        if doc_id not in docs:
            raise NotFound(collection, doc_id)
        docs[doc_id] = self._apply(docs[doc_id], data)

    async def set_document(
        self, collection: str, doc_id: str, data: dict, *, merge: bool = False
    ) -> None:
        docs = self._collection(collection)
        existing = docs.get(doc_id, {}) if merge else {}
        docs[doc_id] = self._apply(existing, data)

    async def delete_document(self, collection: str, doc_id: str) -> None:
        self._collection(collection).pop(doc_id, None)
