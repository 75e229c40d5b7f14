"""
Storage layer for JobVet.

SQLite persistence keyed by (provider, tenant, external_id), used by the
analyzer's freshness check.
"""

from jobvet.storage.sqlite import JobStore, StoredJob

__all__ = ["JobStore", "StoredJob"]
