"""External service adapters: backend HTTP client and storage."""

from approval_gateway.services.backend import ApprovalsBackend
from approval_gateway.services.storage import FileStore, InMemoryStore, KeyValueStore

__all__ = ["ApprovalsBackend", "FileStore", "InMemoryStore", "KeyValueStore"]
