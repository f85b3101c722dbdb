"""
PyTest Configuration and Fixtures
=================================

Shared fixtures for FeedMirror tests: isolated workspaces, sample feeds
and a scripted fetcher for driving the pipeline without the network.
"""

import os
import sys
from contextlib import asynccontextmanager
from pathlib import Path

import pytest

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Set test environment variables before any imports
os.environ["FEEDMIRROR_DEBUG"] = "true"
os.environ["FEEDMIRROR_LOGGING__FILE_PATH"] = ""
os.environ["FEEDMIRROR_STORAGE__BACKEND"] = "filesystem"


SAMPLE_RSS_FEED = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:content="http://purl.org/rss/1.0/modules/content/">
    <channel>
        <title>Test RSS Feed</title>
        <link>http://example.com</link>
        <description>Test feed for unit testing</description>
        <item>
            <title>First Story \xe2\x80\x94 A subtitle</title>
            <link>http://example.com/article1</link>
            <description>Short summary</description>
            <content:encoded><![CDATA[<p>Full <strong>body</strong> text</p>]]></content:encoded>
            <pubDate>Thu, 05 Sep 2024 12:00:00 GMT</pubDate>
            <guid>article-1-guid</guid>
        </item>
        <item>
            <title>Second Story</title>
            <link>http://example.com/article2</link>
            <description>Another test article</description>
            <pubDate>Wed, 04 Sep 2024 15:30:00 GMT</pubDate>
        </item>
    </channel>
</rss>"""

SAMPLE_ATOM_FEED = b"""<?xml version="1.0" encoding="UTF-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
    <title>Test Atom Feed</title>
    <link href="http://example.com"/>
    <id>http://example.com/feed</id>
    <updated>2024-09-07T00:00:01Z</updated>
    <entry>
        <title>Atom Test Article</title>
        <link href="http://example.com/atom-article"/>
        <id>urn:uuid:atom-article-1</id>
        <updated>2024-09-05T12:00:00Z</updated>
        <published>2024-09-05T12:00:00Z</published>
        <summary>This is an Atom article summary</summary>
        <content type="html">&lt;p&gt;Full content with &lt;em&gt;formatting&lt;/em&gt;&lt;/p&gt;</content>
    </entry>
    <entry>
        <title>Summary Only</title>
        <link href="http://example.com/atom-summary"/>
        <id>urn:uuid:atom-article-2</id>
        <updated>2024-09-04T12:00:00Z</updated>
        <summary>Only a summary here</summary>
    </entry>
</feed>"""


def rss_feed(*items) -> bytes:
    """Build a minimal RSS 2.0 document from (guid, title, description) tuples."""
    rendered = "".join(
        f"<item><guid>{guid}</guid><title>{title}</title>"
        f"<link>http://example.com/{guid}</link>"
        f"<description>{description}</description></item>"
        for guid, title, description in items
    )
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<rss version="2.0"><channel><title>Feed</title>'
        "<link>http://example.com</link><description>d</description>"
        f"{rendered}</channel></rss>"
    ).encode("utf-8")


class ScriptedFetcher:
    """Stands in for ConditionalFetcher, returning queued FetchResults per URL."""

    def __init__(self):
        self.responses = {}
        self.calls = []

    def queue(self, url, *results):
        self.responses.setdefault(url, []).extend(results)

    @asynccontextmanager
    async def get_session(self):
        yield None

    async def fetch(self, session, url, etag=None, last_modified=None, source_id=None):
        self.calls.append(
            {"url": url, "etag": etag, "last_modified": last_modified, "source_id": source_id}
        )
        return self.responses[url].pop(0)


@pytest.fixture
def settings(tmp_path):
    """Settings rooted in a temporary workspace."""
    from feedmirror.config.settings import FeedMirrorSettings, LoggingSettings, PathSettings

    return FeedMirrorSettings(
        paths=PathSettings(
            sources_dir=str(tmp_path / "data" / "sources"),
            feeds_dir=str(tmp_path / "feeds"),
            items_dir=str(tmp_path / "items"),
        ),
        logging=LoggingSettings(file_path=None),
    )


@pytest.fixture
def repository(settings):
    from feedmirror.storage.source_repository import SourceRepository

    return SourceRepository(settings.paths.sources_dir)


@pytest.fixture
def scripted_fetcher():
    return ScriptedFetcher()


@pytest.fixture
def sample_rss_feed():
    return SAMPLE_RSS_FEED


@pytest.fixture
def sample_atom_feed():
    return SAMPLE_ATOM_FEED
