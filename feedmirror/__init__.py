"""
FeedMirror - Anonymous Feed Mirroring
=====================================

Polls RSS/Atom feeds and publishes sanitized, content-addressed item
documents plus per-source manifests to a static directory tree or an
object storage bucket, without revealing where the feeds come from.

Main Components:
- Ingestion: conditional HTTP fetching and RSS/Atom parsing
- Processing: HTML sanitization, title formatting, content addressing, manifests
- Storage: filesystem and S3 sinks, source configuration documents
- Configuration: environment variables with Pydantic validation
"""

__version__ = "1.0.0"
__description__ = "Anonymous RSS/Atom feed mirror"

from .config.settings import get_settings
from .utils.logging import configure_application_logging, get_logger_for_component
from .utils.exceptions import FeedMirrorError

__all__ = [
    "get_settings",
    "configure_application_logging",
    "get_logger_for_component",
    "FeedMirrorError",
]
