"""FeedMirror configuration."""

from .settings import FeedMirrorSettings, StorageBackend, get_settings, load_settings

__all__ = ["FeedMirrorSettings", "StorageBackend", "get_settings", "load_settings"]
