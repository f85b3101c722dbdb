#!/usr/bin/env python3
"""
End-to-End Sync Tests
=====================

Runs the full pipeline (real conditional fetcher, parser, processor and
filesystem sink) against a local aiohttp server that honours ETags.
"""

import json
from contextlib import asynccontextmanager
from pathlib import Path

import pytest
from aiohttp import test_utils, web

from feedmirror.models import Source
from feedmirror.processing.addressing import content_hash
from feedmirror.processing.pipeline import SyncPipeline, SyncStatus

from conftest import SAMPLE_RSS_FEED, rss_feed

pytestmark = pytest.mark.integration

LAST_MODIFIED = "Thu, 05 Sep 2024 12:00:00 GMT"


class FeedEndpoint:
    """Serves one feed document with ETag validation."""

    def __init__(self, body: bytes, etag: str = '"v1"'):
        self.body = body
        self.etag = etag
        self.status = 200
        self.requests = []

    def publish(self, body: bytes, etag: str) -> None:
        self.body = body
        self.etag = etag

    async def handle(self, request: web.Request) -> web.Response:
        self.requests.append(dict(request.headers))
        if self.status != 200:
            return web.Response(status=self.status)
        if request.headers.get("If-None-Match") == self.etag:
            return web.Response(status=304)
        return web.Response(
            body=self.body,
            content_type="application/rss+xml",
            headers={"ETag": self.etag, "Last-Modified": LAST_MODIFIED},
        )


@asynccontextmanager
async def serving(**endpoints):
    """Start a local server with one route per endpoint; yields name -> URL."""
    app = web.Application()
    for name, endpoint in endpoints.items():
        app.router.add_get(f"/{name}.xml", endpoint.handle)

    server = test_utils.TestServer(app)
    await server.start_server()
    try:
        yield {name: str(server.make_url(f"/{name}.xml")) for name in endpoints}
    finally:
        await server.close()


@pytest.fixture
def pipeline(settings, repository):
    return SyncPipeline(settings=settings, repository=repository)


def register(repository, source_id, url):
    repository.save(Source.from_url(source_id, url))


def manifest_for(settings, source_id):
    return json.loads((Path(settings.paths.feeds_dir) / f"{source_id}.json").read_text())


class TestEndToEndSync:
    """Full sync cycles over HTTP."""

    @pytest.mark.asyncio
    async def test_first_sync_then_not_modified(self, pipeline, settings, repository):
        """A second run sends the stored ETag and changes nothing."""
        endpoint = FeedEndpoint(SAMPLE_RSS_FEED)

        async with serving(news=endpoint) as urls:
            register(repository, "news", urls["news"])

            first = await pipeline.run()
            items_dir = Path(settings.paths.items_dir) / "news"
            snapshot = {p.name: p.read_text() for p in items_dir.iterdir()}
            second = await pipeline.run()

        assert first.results[0].status == SyncStatus.SYNCED
        assert first.results[0].items_written == 2
        assert second.results[0].status == SyncStatus.UNMODIFIED

        assert "If-None-Match" not in endpoint.requests[0]
        assert endpoint.requests[1]["If-None-Match"] == '"v1"'

        stored = repository.get("news")
        assert stored.etag == '"v1"'
        assert stored.last_modified == LAST_MODIFIED
        assert {p.name: p.read_text() for p in items_dir.iterdir()} == snapshot

        document = json.loads((items_dir / f"{content_hash('article-1-guid')}.json").read_text())
        assert document["title"].startswith('<h1><a href="http://example.com/article1"')
        assert "<h2>A subtitle</h2>" in document["title"]
        assert document["source"] == "news"

    @pytest.mark.asyncio
    async def test_updated_feed_replaces_manifest(self, pipeline, settings, repository):
        """A new feed version replaces the manifest and keeps old item documents."""
        endpoint = FeedEndpoint(rss_feed(("g1", "One", "a"), ("g2", "Two", "b")))

        async with serving(news=endpoint) as urls:
            register(repository, "news", urls["news"])
            await pipeline.run()

            endpoint.publish(rss_feed(("g2", "Two", "changed"), ("g3", "Three", "c")), '"v2"')
            result = (await pipeline.run()).results[0]

        assert result.status == SyncStatus.SYNCED
        assert result.items_written == 1
        assert result.items_skipped == 1
        assert [entry["g"] for entry in manifest_for(settings, "news")] == ["g2", "g3"]

        items_dir = Path(settings.paths.items_dir) / "news"
        assert (items_dir / f"{content_hash('g1')}.json").exists()
        g2 = json.loads((items_dir / f"{content_hash('g2')}.json").read_text())
        assert g2["description"] == "b"
        assert repository.get("news").etag == '"v2"'

    @pytest.mark.asyncio
    async def test_server_error_keeps_state(self, pipeline, settings, repository):
        """HTTP errors fail the source and leave validators and outputs alone."""
        endpoint = FeedEndpoint(rss_feed(("g1", "One", "a")))

        async with serving(news=endpoint) as urls:
            register(repository, "news", urls["news"])
            await pipeline.run()
            manifest_before = manifest_for(settings, "news")

            endpoint.status = 500
            endpoint.publish(rss_feed(("g9", "Nine", "z")), '"v9"')
            result = (await pipeline.run()).results[0]

        assert result.status == SyncStatus.FAILED
        assert result.error == "HTTP 500"
        assert repository.get("news").etag == '"v1"'
        assert manifest_for(settings, "news") == manifest_before

    @pytest.mark.asyncio
    async def test_sources_are_independent(self, pipeline, settings, repository):
        """A failing source does not prevent the others from syncing."""
        healthy = FeedEndpoint(rss_feed(("g1", "One", "a")))
        broken = FeedEndpoint(b"<html><body>maintenance</body></html>")

        async with serving(healthy=healthy, broken=broken) as urls:
            register(repository, "aaa", urls["broken"])
            register(repository, "bbb", urls["healthy"])
            run = await pipeline.run()

        statuses = {r.source_id: r.status for r in run.results}
        assert statuses == {"aaa": SyncStatus.FAILED, "bbb": SyncStatus.SYNCED}
        assert manifest_for(settings, "bbb") == [{"g": "g1", "h": content_hash("g1")}]
        assert (Path(settings.paths.items_dir) / ".nojekyll").exists()
