"""
Manifest Builder
================

A manifest is the full, ordered index of one source's current items as
``[{"g": identifier, "h": item_hash}, ...]``. It is rebuilt from scratch on
every modified fetch and replaces the previous one; it is never merged.
"""

import json
from dataclasses import dataclass, field
from typing import Dict, List

from .addressing import content_hash


@dataclass(frozen=True)
class ManifestEntry:
    """Links an item's original identifier to its content address."""

    identifier: str
    item_hash: str

    def to_document(self) -> Dict[str, str]:
        return {"g": self.identifier, "h": self.item_hash}


@dataclass
class Manifest:
    """Ordered manifest entries for one source."""

    source_id: str
    entries: List[ManifestEntry] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)

    def to_document(self) -> List[Dict[str, str]]:
        return [entry.to_document() for entry in self.entries]

    def to_json(self) -> str:
        return json.dumps(self.to_document(), indent=2, ensure_ascii=False)


class ManifestBuilder:
    """Accumulates entries in feed order; ``build()`` yields the replacement manifest."""

    def __init__(self, source_id: str):
        self.source_id = source_id
        self._entries: List[ManifestEntry] = []

    def add(self, identifier: str) -> ManifestEntry:
        """Address ``identifier`` and append it. Returns the new entry."""
        entry = ManifestEntry(identifier=identifier, item_hash=content_hash(identifier))
        self._entries.append(entry)
        return entry

    def build(self) -> Manifest:
        return Manifest(source_id=self.source_id, entries=list(self._entries))
