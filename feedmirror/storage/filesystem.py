"""
Filesystem Sink
===============

Publishes into a local directory tree, typically a static site checkout.
Writes are sequential and synchronous.
"""

import os
import tempfile
from pathlib import Path
from typing import List

from ..processing.manifest import Manifest
from ..utils.logging import get_logger_for_component
from .base import (
    NOJEKYLL_MARKER,
    ItemBatch,
    PersistenceSink,
    UploadResult,
    WriteOutcome,
)


def atomic_write_text(path: Path, text: str) -> None:
    """Replace ``path`` with ``text`` without exposing a partial file."""
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(text)
        os.chmod(tmp_name, 0o644)
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise


class FilesystemSink(PersistenceSink):
    """Writes ``<items_dir>/<source>/<hash>.json`` and ``<feeds_dir>/<source>.json``."""

    name = "filesystem"

    def __init__(self, items_dir: str, feeds_dir: str):
        self.items_dir = Path(items_dir)
        self.feeds_dir = Path(feeds_dir)
        self.logger = get_logger_for_component("storage.filesystem")

    def item_path(self, source_id: str, item_hash: str) -> Path:
        return self.items_dir / source_id / f"{item_hash}.json"

    def manifest_path(self, source_id: str) -> Path:
        return self.feeds_dir / f"{source_id}.json"

    def write_item(self, source_id: str, item_hash: str, document_json: str) -> UploadResult:
        """Create the item document unless it already exists."""
        path = self.item_path(source_id, item_hash)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            # "x" fails if the file exists: first writer wins
            handle = open(path, "x", encoding="utf-8")
        except FileExistsError:
            if path.is_file():
                return UploadResult(key=str(path), outcome=WriteOutcome.SKIPPED)
            return self._item_failure(path, source_id, item_hash, "path is not a file")
        except OSError as e:
            return self._item_failure(path, source_id, item_hash, str(e))

        try:
            with handle:
                handle.write(document_json)
        except OSError as e:
            # A truncated document must not count as existing on later runs
            path.unlink(missing_ok=True)
            return self._item_failure(path, source_id, item_hash, str(e))
        return UploadResult(key=str(path), outcome=WriteOutcome.WRITTEN)

    def _item_failure(self, path: Path, source_id: str, item_hash: str, error: str) -> UploadResult:
        self.logger.error(
            f"Failed to write item {item_hash}: {error}",
            extra={"source_id": source_id, "item_hash": item_hash},
        )
        return UploadResult(key=str(path), outcome=WriteOutcome.FAILED, error=error)

    def write_manifest(self, manifest: Manifest) -> UploadResult:
        """Overwrite the source's manifest."""
        path = self.manifest_path(manifest.source_id)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            atomic_write_text(path, manifest.to_json())
        except OSError as e:
            self.logger.error(
                f"Failed to write manifest: {e}", extra={"source_id": manifest.source_id}
            )
            return UploadResult(
                key=str(path), outcome=WriteOutcome.FAILED, error=str(e), is_manifest=True
            )
        return UploadResult(key=str(path), outcome=WriteOutcome.WRITTEN, is_manifest=True)

    async def persist(
        self, source_id: str, items: ItemBatch, manifest: Manifest
    ) -> List[UploadResult]:
        results = [
            self.write_item(source_id, item_hash, item.to_json())
            for item_hash, item in items
        ]
        results.append(self.write_manifest(manifest))
        return results

    def finalize(self) -> None:
        """Mark the items tree for static hosting that skips Jekyll processing."""
        self.items_dir.mkdir(parents=True, exist_ok=True)
        (self.items_dir / NOJEKYLL_MARKER).write_text("", encoding="utf-8")
