"""
Source adapter interface.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Optional, Protocol

from jobvet.models import CanonicalJobRecord, CompositeKey


@dataclass(frozen=True)
class SourceTarget:
    """A routed URL: which adapter handles it and under which composite key."""
    provider: str
    tenant: str
    external_id: str
    url: str

    @property
    def key(self) -> CompositeKey:
        return (self.provider, self.tenant, self.external_id)


class SourceAdapter(Protocol):
    """
    Fetches one posting and normalizes it into a CanonicalJobRecord.

    Adapters return None when the source cannot be fetched; they never raise
    for transport failures. Cancellation still propagates.
    """

    name: str

    async def fetch(
        self,
        target: SourceTarget,
        cancel: Optional[asyncio.Event] = None,
    ) -> Optional[CanonicalJobRecord]:
        ...
