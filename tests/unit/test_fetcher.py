"""
Conditional Fetcher Tests
=========================

Tests for conditional GET handling with a mocked aiohttp session.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, Mock

import aiohttp
import pytest

from feedmirror.ingestion.fetcher import (
    ConditionalFetcher,
    FetchStatus,
    build_conditional_headers,
)

FEED_URL = "https://example.com/feed.xml"


def make_session(status=200, body=b"", headers=None, side_effect=None):
    """Mock session whose get() yields a response as an async context manager."""
    response = Mock()
    response.status = status
    response.headers = headers or {}
    response.read = AsyncMock(return_value=body)

    context = MagicMock()
    context.__aenter__ = AsyncMock(return_value=response)
    context.__aexit__ = AsyncMock(return_value=False)

    session = Mock()
    if side_effect is not None:
        session.get = Mock(side_effect=side_effect)
    else:
        session.get = Mock(return_value=context)
    return session, response


@pytest.fixture
def fetcher(settings):
    return ConditionalFetcher(settings=settings)


class TestConditionalHeaders:
    """Test validator header construction."""

    def test_no_validators(self):
        assert build_conditional_headers() == {}
        assert build_conditional_headers("", "") == {}

    def test_both_validators(self):
        headers = build_conditional_headers('"abc"', "Wed, 04 Sep 2024 15:30:00 GMT")
        assert headers == {
            "If-None-Match": '"abc"',
            "If-Modified-Since": "Wed, 04 Sep 2024 15:30:00 GMT",
        }

    def test_etag_only(self):
        assert build_conditional_headers('"abc"', None) == {"If-None-Match": '"abc"'}


class TestConditionalFetcher:
    """Test fetch outcome classification."""

    def test_timeout_from_settings(self, settings):
        """Default timeout comes from fetch settings."""
        assert ConditionalFetcher(settings=settings).timeout == 15.0
        assert ConditionalFetcher(timeout=3, settings=settings).timeout == 3

    @pytest.mark.asyncio
    async def test_modified_response(self, fetcher):
        """2xx responses carry the body and new validators."""
        session, _ = make_session(
            status=200,
            body=b"<rss/>",
            headers={"ETag": '"v2"', "Last-Modified": "Thu, 05 Sep 2024 12:00:00 GMT"},
        )

        result = await fetcher.fetch(session, FEED_URL, etag='"v1"', source_id="abc")

        assert result.status == FetchStatus.MODIFIED
        assert result.modified
        assert result.content == b"<rss/>"
        assert result.etag == '"v2"'
        assert result.last_modified == "Thu, 05 Sep 2024 12:00:00 GMT"
        assert result.http_status == 200
        session.get.assert_called_once_with(FEED_URL, headers={"If-None-Match": '"v1"'})

    @pytest.mark.asyncio
    async def test_modified_without_validators(self, fetcher):
        """Servers that send no validators yield None for both."""
        session, _ = make_session(status=200, body=b"<rss/>")

        result = await fetcher.fetch(session, FEED_URL)

        assert result.status == FetchStatus.MODIFIED
        assert result.etag is None
        assert result.last_modified is None
        session.get.assert_called_once_with(FEED_URL, headers={})

    @pytest.mark.asyncio
    async def test_not_modified(self, fetcher):
        """304 is classified as unmodified and the body is not read."""
        session, response = make_session(status=304)

        result = await fetcher.fetch(
            session, FEED_URL, etag='"v1"', last_modified="Wed, 04 Sep 2024 15:30:00 GMT"
        )

        assert result.status == FetchStatus.UNMODIFIED
        assert result.content is None
        response.read.assert_not_awaited()
        session.get.assert_called_once_with(
            FEED_URL,
            headers={
                "If-None-Match": '"v1"',
                "If-Modified-Since": "Wed, 04 Sep 2024 15:30:00 GMT",
            },
        )

    @pytest.mark.asyncio
    async def test_http_error(self, fetcher):
        """Non-2xx, non-304 statuses are failures."""
        session, response = make_session(status=500)

        result = await fetcher.fetch(session, FEED_URL)

        assert result.status == FetchStatus.FAILED
        assert result.error == "HTTP 500"
        assert result.http_status == 500
        response.read.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_timeout(self, fetcher):
        """Timeouts are failures, not exceptions."""
        session, _ = make_session(side_effect=asyncio.TimeoutError())

        result = await fetcher.fetch(session, FEED_URL)

        assert result.status == FetchStatus.FAILED
        assert "timeout" in result.error.lower()

    @pytest.mark.asyncio
    async def test_network_error(self, fetcher):
        """Transport errors are failures."""
        session, _ = make_session(side_effect=aiohttp.ClientConnectionError("refused"))

        result = await fetcher.fetch(session, FEED_URL)

        assert result.status == FetchStatus.FAILED
        assert result.error == "Network error: ClientConnectionError"

    @pytest.mark.asyncio
    async def test_url_not_in_error(self, fetcher):
        """Failure messages never include the feed URL."""
        session, _ = make_session(
            side_effect=aiohttp.InvalidURL("https://example.com/feed.xml")
        )

        result = await fetcher.fetch(session, FEED_URL)

        assert result.status == FetchStatus.FAILED
        assert "example.com" not in result.error

    @pytest.mark.asyncio
    async def test_get_session(self, fetcher):
        """Sessions are real aiohttp sessions with the configured timeout."""
        async with fetcher.get_session() as session:
            assert isinstance(session, aiohttp.ClientSession)
            assert session.timeout.total == 15.0
        assert session.closed
