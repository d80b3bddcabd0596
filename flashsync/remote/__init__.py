from flashsync.remote.base import (
    Owner,
    RemoteStore,
    RemoteStoreError,
    RemoteUnavailableError,
)

__all__ = ["Owner", "RemoteStore", "RemoteStoreError", "RemoteUnavailableError"]
