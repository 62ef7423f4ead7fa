"""
Upload record persistence.
"""
from records.store import RecordStore

__all__ = ["RecordStore"]
