"""
DocumentStore -- the interface the batch executor runs queries through.

Contract:
    Implementations expose a single already-open database.  Pipelines are
    opaque lists of stage documents; the store passes them through to the
    engine without inspecting them.

Failure modes:
    Every engine-level failure surfaces as ``StoreError`` (or a subclass).
    Callers never see driver exception types.
"""

from __future__ import annotations

from typing import Any, Mapping, Protocol, Sequence, runtime_checkable

Pipeline = Sequence[Mapping[str, Any]]
Document = dict[str, Any]


@runtime_checkable
class DocumentStore(Protocol):
    """Read-only access to the collections of one database."""

    def count_documents(
        self,
        collection_name: str,
        filter: Mapping[str, Any] | None = None,
    ) -> int:
        """Count documents in ``collection_name`` matching ``filter``."""
        ...

    def aggregate(
        self,
        collection_name: str,
        pipeline: Pipeline,
        *,
        allow_disk_use: bool = False,
    ) -> list[Document]:
        """Run ``pipeline`` and return every result document, in order.

        ``allow_disk_use`` lets the engine spill large sort / group stages
        to disk.
        """
        ...

    def database_stats(self) -> dict[str, Any]:
        """Return engine-level statistics for the database."""
        ...
