from .publisher import PublishError, SummaryPublisher
from .store import (
    FirestoreStore,
    JsonFileStore,
    RecordStore,
    StoreError,
    StoreReadError,
    StoreWriteError,
)

__all__ = [
    "FirestoreStore",
    "JsonFileStore",
    "PublishError",
    "RecordStore",
    "StoreError",
    "StoreReadError",
    "StoreWriteError",
    "SummaryPublisher",
]
