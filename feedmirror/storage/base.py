"""
Persistence Sink Interface
==========================

Both backends share the same key layout and semantics:

- ``items/<sourceId>/<itemHash>.json`` is created only if absent; an
  existing item document is never modified.
- ``feeds/<sourceId>.json`` is overwritten with the latest manifest.

Individual write failures are reported as ``UploadResult`` values so the
remaining writes of a cycle still go ahead.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from ..models import ProcessedItem
from ..processing.manifest import Manifest

# (item_hash, document) pairs, first occurrence per hash
ItemBatch = Sequence[Tuple[str, ProcessedItem]]

NOJEKYLL_MARKER = ".nojekyll"


class WriteOutcome(str, Enum):
    WRITTEN = "written"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class UploadResult:
    """Outcome of a single document write."""

    key: str
    outcome: WriteOutcome
    error: Optional[str] = None
    is_manifest: bool = False

    @property
    def ok(self) -> bool:
        return self.outcome != WriteOutcome.FAILED


def item_key(items_root: str, source_id: str, item_hash: str) -> str:
    return f"{items_root}/{source_id}/{item_hash}.json"


def manifest_key(feeds_root: str, source_id: str) -> str:
    return f"{feeds_root}/{source_id}.json"


class PersistenceSink(ABC):
    """Target store for item documents and manifests."""

    name = "sink"

    @abstractmethod
    async def persist(
        self, source_id: str, items: ItemBatch, manifest: Manifest
    ) -> List[UploadResult]:
        """Write a cycle's items (create-if-absent) and its manifest (overwrite).

        Never raises for individual write failures; every attempted write
        yields exactly one UploadResult.
        """

    def finalize(self) -> None:
        """Hook run once after all sources were processed."""
        return None
