"""
Sync Pipeline Orchestrator
==========================

Runs one synchronization pass over every configured source:

    fetch (conditional) -> parse -> sanitize/format/address each item
    -> build manifest -> persist -> update cached validators

Sources are processed one at a time and independently: whatever goes wrong
with one source is logged and recorded in its result, and the run moves on.
Cached validators are only rewritten after a modified fetch whose items and
manifest were all persisted, so failed cycles are retried with the same
validators on the next invocation.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional

import aiohttp

from ..config.settings import FeedMirrorSettings, get_settings
from ..ingestion.feed_parser import parse_feed
from ..ingestion.fetcher import ConditionalFetcher, FetchStatus
from ..models import Source
from ..storage import PersistenceSink, SourceRepository, create_sink
from ..storage.base import WriteOutcome
from ..utils.exceptions import FeedMirrorError, handle_exception
from ..utils.logging import PerformanceLogger, get_logger_for_component
from .item_processor import ItemProcessor
from .manifest import ManifestBuilder


class SyncStatus(str, Enum):
    """Outcome of one source's cycle."""
    UNMODIFIED = "unmodified"
    SYNCED = "synced"
    PARTIAL = "partial"
    FAILED = "failed"


@dataclass
class SourceSyncResult:
    """Result of syncing a single source."""
    source_id: str
    status: SyncStatus
    items_total: int = 0
    items_written: int = 0
    items_skipped: int = 0
    items_invalid: int = 0
    write_failures: int = 0
    manifest_written: bool = False
    metadata_updated: bool = False
    error: Optional[str] = None
    duration_seconds: float = 0.0


@dataclass
class SyncRunResult:
    """Aggregate result of a full run."""
    results: List[SourceSyncResult] = field(default_factory=list)
    processing_time_seconds: float = 0.0

    def count(self, status: SyncStatus) -> int:
        return sum(1 for r in self.results if r.status == status)

    @property
    def items_written(self) -> int:
        return sum(r.items_written for r in self.results)

    @property
    def failed_sources(self) -> List[str]:
        return [r.source_id for r in self.results if r.status == SyncStatus.FAILED]


class SyncPipeline:
    """Feed synchronization and content-addressing pipeline."""

    def __init__(
        self,
        settings: Optional[FeedMirrorSettings] = None,
        repository: Optional[SourceRepository] = None,
        sink: Optional[PersistenceSink] = None,
        fetcher: Optional[ConditionalFetcher] = None,
        item_processor: Optional[ItemProcessor] = None,
    ):
        """Initialize the pipeline.

        Components default to ones built from ``settings``.

        Raises:
            ConfigurationError: If the configured sink cannot be created
        """
        self.settings = settings or get_settings()
        self.repository = repository or SourceRepository(self.settings.paths.sources_dir)
        self.sink = sink or create_sink(self.settings)
        self.fetcher = fetcher or ConditionalFetcher(settings=self.settings)
        self.item_processor = item_processor or ItemProcessor(settings=self.settings)
        self.logger = get_logger_for_component("pipeline")

    async def run(self, source_ids: Optional[Iterable[str]] = None) -> SyncRunResult:
        """Sync every source (or only ``source_ids``) sequentially."""
        start = time.monotonic()
        sources = self.repository.list_sources()
        if source_ids is not None:
            wanted = set(source_ids)
            sources = [s for s in sources if s.id in wanted]

        self.logger.info(f"Ingesting {len(sources)} sources via {self.sink.name} sink")

        run_result = SyncRunResult()
        async with self.fetcher.get_session() as session:
            for source in sources:
                run_result.results.append(await self.sync_source(session, source))

        try:
            self.sink.finalize()
        except OSError as e:
            self.logger.error(f"Failed to finalize {self.sink.name} sink: {e}")

        run_result.processing_time_seconds = time.monotonic() - start
        self.logger.info(
            f"Ingestion complete: {run_result.count(SyncStatus.SYNCED)} synced, "
            f"{run_result.count(SyncStatus.UNMODIFIED)} unmodified, "
            f"{run_result.count(SyncStatus.PARTIAL)} partial, "
            f"{run_result.count(SyncStatus.FAILED)} failed, "
            f"{run_result.items_written} new items "
            f"in {run_result.processing_time_seconds:.2f}s"
        )
        return run_result

    async def sync_source(
        self, session: aiohttp.ClientSession, source: Source
    ) -> SourceSyncResult:
        """Run one cycle for ``source``. Never raises."""
        logger = self.logger.bind(source_id=source.id)
        result = SourceSyncResult(source_id=source.id, status=SyncStatus.FAILED)
        start = time.monotonic()

        try:
            with PerformanceLogger(logger, "source sync", source_id=source.id):
                await self._sync(session, source, result, logger)
        except FeedMirrorError as e:
            logger.error(f"Error syncing source: {e}", extra=e.to_dict())
            result.status = SyncStatus.FAILED
            result.error = str(e)
        except Exception as e:
            error = handle_exception(e, logger, "source sync", {"source_id": source.id})
            result.status = SyncStatus.FAILED
            result.error = str(error)

        result.duration_seconds = time.monotonic() - start
        return result

    async def _sync(self, session, source: Source, result: SourceSyncResult, logger) -> None:
        fetch = await self.fetcher.fetch(
            session,
            source.feed_url,
            etag=source.etag,
            last_modified=source.last_modified,
            source_id=source.id,
        )

        if fetch.status == FetchStatus.UNMODIFIED:
            result.status = SyncStatus.UNMODIFIED
            return
        if fetch.status == FetchStatus.FAILED:
            result.status = SyncStatus.FAILED
            result.error = fetch.error
            return

        logger.info("Syncing source")
        raw_items = parse_feed(fetch.content, source_id=source.id)
        result.items_total = len(raw_items)

        builder = ManifestBuilder(source.id)
        batch = []
        seen = set()
        for raw in raw_items:
            identifier = raw.identifier
            if not identifier:
                result.items_invalid += 1
                logger.warning("Skipping entry without guid or link")
                continue

            entry = builder.add(identifier)
            # Repeated identifiers share one document; the first occurrence wins
            if entry.item_hash in seen:
                continue
            seen.add(entry.item_hash)
            batch.append((entry.item_hash, self.item_processor.process(raw, source.id)))

        manifest = builder.build()
        uploads = await self.sink.persist(source.id, batch, manifest)

        for upload in uploads:
            if upload.is_manifest:
                result.manifest_written = upload.outcome == WriteOutcome.WRITTEN
            elif upload.outcome == WriteOutcome.WRITTEN:
                result.items_written += 1
            elif upload.outcome == WriteOutcome.SKIPPED:
                result.items_skipped += 1
        result.write_failures = sum(1 for upload in uploads if not upload.ok)

        if result.write_failures:
            result.status = SyncStatus.PARTIAL
            result.error = f"{result.write_failures} writes failed"
            logger.warning(
                f"{result.write_failures} of {len(uploads)} writes failed; "
                "keeping previous cache validators"
            )
            return

        self.repository.save(source.with_validators(fetch.etag, fetch.last_modified))
        result.metadata_updated = True
        result.status = SyncStatus.SYNCED
        logger.info(
            f"Synced {len(manifest)} entries ({result.items_written} new, "
            f"{result.items_skipped} existing)"
        )


def build_pipeline(settings: Optional[FeedMirrorSettings] = None) -> SyncPipeline:
    """Validate ``settings`` and assemble a pipeline from them.

    Raises:
        ConfigurationError: On missing or invalid configuration
    """
    settings = settings or get_settings()
    settings.validate_configuration()
    return SyncPipeline(settings=settings)
