"""
Configuration for the Sync Client.

Values are read from environment variables with defaults suitable for
a Record Store running locally.
"""

import os
from dataclasses import dataclass


@dataclass
class SyncSettings:
    """Sync Client settings loaded from environment variables."""

    # Root URL of the Record Store (without the ``/api/v1`` prefix).
    api_url: str = os.getenv("GYM_DESK_API_URL", "http://localhost:8000")
    api_token: str = os.getenv("GYM_DESK_API_TOKEN", "")

    # JSON file holding the persisted replica.
    replica_path: str = os.getenv("GYM_DESK_REPLICA_PATH", "gym_desk_replica.json")

    # Transport timeout in seconds for every remote call.
    timeout: float = float(os.getenv("SYNC_TIMEOUT", "5"))

    # Push local mutations to the Record Store (best effort).
    push: bool = os.getenv("SYNC_PUSH", "true").lower() in {"1", "true", "yes"}

    log_level: str = os.getenv("LOG_LEVEL", "INFO")


sync_settings = SyncSettings()
