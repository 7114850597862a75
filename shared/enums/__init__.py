from .sync_status import JobStatus, SyncErrorType

__all__ = ["JobStatus", "SyncErrorType"]
