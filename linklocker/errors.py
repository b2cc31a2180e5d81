"""
Domain errors raised by document store implementations.
"""


class StoreError(Exception):
    """Base class for document store failures."""


class StoreUnavailable(StoreError):
    """The document store could not be reached or rejected the call."""


class NotFound(StoreError):
    """The addressed document does not exist."""

    def __init__(self, collection: str, doc_id: str):
        super().__init__(f"{collection}/{doc_id} not found")
        self.collection = collection
        self.doc_id = doc_id
