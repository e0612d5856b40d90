"""
Sync Client for the Gym Desk Record Store.

``SyncClient`` keeps a locally persisted replica of every collection,
applies the Record Store's invariants to local mutations and
reconciles with the server at startup when it is reachable.
"""

from .replica import ReplicaState, SyncClient
from .remote import RecordStoreAPI
from .storage import JSONFileStorage, MemoryStorage

__all__ = ["JSONFileStorage", "MemoryStorage", "RecordStoreAPI", "ReplicaState", "SyncClient"]
