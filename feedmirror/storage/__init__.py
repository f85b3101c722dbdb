"""
FeedMirror Storage Layer
========================

Persistence sinks for published documents and the source repository.
"""

from ..config.settings import FeedMirrorSettings, StorageBackend
from ..utils.exceptions import ConfigurationError, ErrorCode
from .base import PersistenceSink, UploadResult, WriteOutcome
from .filesystem import FilesystemSink
from .object_store import ObjectStoreSink
from .source_repository import SourceRepository


def create_sink(settings: FeedMirrorSettings) -> PersistenceSink:
    """Build the sink selected by ``settings.storage.backend``.

    Raises:
        ConfigurationError: If the object storage backend lacks credentials
    """
    if settings.storage.backend == StorageBackend.S3:
        missing = settings.storage.missing_credentials()
        if missing:
            raise ConfigurationError(
                f"Object storage backend requires: {', '.join(missing)}",
                config_key=missing[0],
                error_code=ErrorCode.CONFIG_MISSING,
            )
        return ObjectStoreSink.from_settings(
            settings.storage,
            items_root=settings.paths.items_dir,
            feeds_root=settings.paths.feeds_dir,
        )

    return FilesystemSink(settings.paths.items_dir, settings.paths.feeds_dir)


__all__ = [
    "create_sink",
    "PersistenceSink",
    "UploadResult",
    "WriteOutcome",
    "FilesystemSink",
    "ObjectStoreSink",
    "SourceRepository",
]
