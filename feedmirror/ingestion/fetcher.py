"""
Conditional Feed Fetcher
========================

Single-shot HTTP GET per source with cache validators. Every outcome is
classified into a FetchResult; nothing raises past this module.
"""

import asyncio
import ssl
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Optional

import aiohttp
import certifi

from ..config.settings import FeedMirrorSettings, get_settings
from ..utils.logging import get_logger_for_component

HTTP_NOT_MODIFIED = 304


class FetchStatus(str, Enum):
    """Outcome of a conditional fetch."""
    UNMODIFIED = "unmodified"
    MODIFIED = "modified"
    FAILED = "failed"


@dataclass
class FetchResult:
    """Result of a conditional fetch.

    ``content``, ``etag`` and ``last_modified`` are only set for MODIFIED
    results; ``error`` only for FAILED ones.
    """

    status: FetchStatus
    content: Optional[bytes] = None
    etag: Optional[str] = None
    last_modified: Optional[str] = None
    error: Optional[str] = None
    http_status: Optional[int] = None
    fetch_time: Optional[datetime] = None

    def __post_init__(self):
        if not self.fetch_time:
            self.fetch_time = datetime.now(timezone.utc)

    @property
    def modified(self) -> bool:
        return self.status == FetchStatus.MODIFIED


def build_conditional_headers(
    etag: Optional[str] = None, last_modified: Optional[str] = None
) -> Dict[str, str]:
    """Request headers for the cached validators that are present."""
    headers = {}
    if etag:
        headers["If-None-Match"] = etag
    if last_modified:
        headers["If-Modified-Since"] = last_modified
    return headers


class ConditionalFetcher:
    """Fetches feeds with If-None-Match / If-Modified-Since and a hard timeout."""

    def __init__(
        self,
        timeout: Optional[float] = None,
        settings: Optional[FeedMirrorSettings] = None,
    ):
        """Initialize fetcher.

        Args:
            timeout: Total request timeout in seconds (default from config)
            settings: Settings instance (default: global settings)
        """
        settings = settings or get_settings()
        self.timeout = timeout or settings.fetch.timeout_seconds
        self.user_agent = settings.fetch.user_agent
        self.logger = get_logger_for_component("fetcher")
        self.ssl_context = ssl.create_default_context(cafile=certifi.where())

    @asynccontextmanager
    async def get_session(self):
        """Get a configured aiohttp session."""
        connector = aiohttp.TCPConnector(ssl=self.ssl_context, limit_per_host=2)
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        headers = {
            "User-Agent": self.user_agent,
            "Accept": "application/rss+xml, application/atom+xml, application/xml, text/xml, */*",
        }

        async with aiohttp.ClientSession(
            connector=connector, timeout=timeout, headers=headers
        ) as session:
            yield session

    async def fetch(
        self,
        session: aiohttp.ClientSession,
        url: str,
        etag: Optional[str] = None,
        last_modified: Optional[str] = None,
        source_id: Optional[str] = None,
    ) -> FetchResult:
        """Fetch one feed conditionally.

        Args:
            session: aiohttp session for the request
            url: Feed URL (never logged)
            etag: Previously stored ETag
            last_modified: Previously stored Last-Modified
            source_id: Source id for log context

        Returns:
            FetchResult classified as UNMODIFIED, MODIFIED or FAILED
        """
        log_extra = {"source_id": source_id}
        headers = build_conditional_headers(etag, last_modified)

        try:
            async with session.get(url, headers=headers) as response:
                if response.status == HTTP_NOT_MODIFIED:
                    self.logger.debug("Feed not modified", extra=log_extra)
                    return FetchResult(
                        status=FetchStatus.UNMODIFIED, http_status=response.status
                    )

                if not 200 <= response.status < 300:
                    error_msg = f"HTTP {response.status}"
                    self.logger.warning(f"Feed fetch failed: {error_msg}", extra=log_extra)
                    return FetchResult(
                        status=FetchStatus.FAILED,
                        error=error_msg,
                        http_status=response.status,
                    )

                content = await response.read()
                return FetchResult(
                    status=FetchStatus.MODIFIED,
                    content=content,
                    etag=response.headers.get("ETag"),
                    last_modified=response.headers.get("Last-Modified"),
                    http_status=response.status,
                )

        except asyncio.TimeoutError:
            error_msg = f"Request timeout after {self.timeout}s"
            self.logger.warning(f"Feed fetch timeout: {error_msg}", extra=log_extra)
            return FetchResult(status=FetchStatus.FAILED, error=error_msg)

        except aiohttp.ClientError as e:
            error_msg = f"Network error: {e.__class__.__name__}"
            self.logger.warning(f"Feed fetch failed: {error_msg}", extra=log_extra)
            return FetchResult(status=FetchStatus.FAILED, error=error_msg)

        except Exception as e:
            error_msg = f"Fetch error: {e.__class__.__name__}: {e}"
            self.logger.error(f"Feed fetch failed: {error_msg}", extra=log_extra)
            return FetchResult(status=FetchStatus.FAILED, error=error_msg)
