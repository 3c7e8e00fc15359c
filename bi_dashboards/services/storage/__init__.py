"""Document store writer for configuration snapshots."""

from bi_dashboards.services.storage.document_store import (
    DocumentStore,
    WriteMode,
    WriteResult,
)

__all__ = ["DocumentStore", "WriteMode", "WriteResult"]
