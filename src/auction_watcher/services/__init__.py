from .diff import compute_new_entries, compute_relevant_new, filter_target_sizes
from .email_sender import BaseNotifier, EmailService, NotifyError
from .extractor import extract, extract_units
from .fetcher import BaseFetcher, FetchError, HttpFetcher
from .run_lock import RunLock
from .snapshot_store import (
    FileSnapshotStore,
    PostgresSnapshotStore,
    SnapshotStore,
    StoreError,
    get_snapshot_store,
)

__all__ = [
    "compute_new_entries",
    "compute_relevant_new",
    "filter_target_sizes",
    "BaseNotifier",
    "EmailService",
    "NotifyError",
    "extract",
    "extract_units",
    "BaseFetcher",
    "FetchError",
    "HttpFetcher",
    "RunLock",
    "FileSnapshotStore",
    "PostgresSnapshotStore",
    "SnapshotStore",
    "StoreError",
    "get_snapshot_store",
]
