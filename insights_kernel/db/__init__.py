"""
Document store access.

``DocumentStore`` is the only interface the executor sees.  The pymongo
adapter and the connection lifecycle live beside it and are wired by the
entry scripts.
"""

from insights_kernel.db.connection import StoreConnection, open_store
from insights_kernel.db.mongo import MongoDocumentStore
from insights_kernel.db.store import DocumentStore

__all__ = [
    "DocumentStore",
    "MongoDocumentStore",
    "StoreConnection",
    "open_store",
]
