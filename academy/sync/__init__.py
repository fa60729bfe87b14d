"""Document store access and subscription handles."""

from .store import DocumentStore
from .subscription import StreamSubscription, Subscription
from .synchronizer import ModuleSnapshotStream, PersistenceSynchronizer, sort_newest_first

__all__ = [
    "DocumentStore",
    "ModuleSnapshotStream",
    "PersistenceSynchronizer",
    "StreamSubscription",
    "Subscription",
    "sort_newest_first",
]
