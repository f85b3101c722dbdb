"""
Source Repository Tests
=======================
"""

import base64
import json

import pytest

from feedmirror.models import Source
from feedmirror.processing.addressing import content_hash
from feedmirror.storage.source_repository import SourceRepository
from feedmirror.utils.exceptions import ErrorCode, StorageError, ValidationError


def encode(url: str) -> str:
    return base64.b64encode(url.encode()).decode()


def write_source(directory, source_id, document):
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"{source_id}.json"
    path.write_text(document if isinstance(document, str) else json.dumps(document))
    return path


@pytest.fixture
def sources_dir(tmp_path):
    return tmp_path / "sources"


@pytest.fixture
def repo(sources_dir):
    return SourceRepository(str(sources_dir))


class TestSourceRepository:
    """Test source document loading and saving."""

    def test_list_sorted_by_id(self, repo, sources_dir):
        """Sources are returned in id order."""
        write_source(sources_dir, "bbb", {"u": encode("http://b")})
        write_source(sources_dir, "aaa", {"u": encode("http://a")})

        sources = repo.list_sources()

        assert [s.id for s in sources] == ["aaa", "bbb"]
        assert sources[0].feed_url == "http://a"

    def test_missing_directory(self, repo):
        """A missing sources directory means no sources."""
        assert repo.list_sources() == []

    def test_broken_documents_skipped(self, repo, sources_dir):
        """Unreadable or invalid documents are skipped."""
        write_source(sources_dir, "good", {"u": encode("http://g")})
        write_source(sources_dir, "badjson", "{not json")
        write_source(sources_dir, "nourl", {"etag": "x"})
        write_source(sources_dir, "list", [1, 2])

        assert [s.id for s in repo.list_sources()] == ["good"]

    def test_non_json_files_ignored(self, repo, sources_dir):
        write_source(sources_dir, "good", {"u": encode("http://g")})
        (sources_dir / "README.md").write_text("notes")

        assert [s.id for s in repo.list_sources()] == ["good"]

    def test_get(self, repo, sources_dir):
        write_source(sources_dir, "aaa", {"u": encode("http://a"), "etag": '"1"'})

        assert repo.get("aaa").etag == '"1"'
        assert repo.get("missing") is None

    def test_get_broken(self, repo, sources_dir):
        write_source(sources_dir, "bad", "{")
        with pytest.raises(StorageError) as exc_info:
            repo.get("bad")
        assert exc_info.value.error_code == ErrorCode.STORAGE_READ_FAILED

    def test_save_updates_validators(self, repo, sources_dir):
        """Saved documents keep u and unknown keys and carry the new validators."""
        write_source(sources_dir, "aaa", {"u": encode("http://a"), "note": "keep"})
        source = repo.get("aaa")

        repo.save(source.with_validators('"v2"', "Thu, 05 Sep 2024 12:00:00 GMT"))

        document = json.loads((sources_dir / "aaa.json").read_text())
        assert document == {
            "u": encode("http://a"),
            "etag": '"v2"',
            "lastModified": "Thu, 05 Sep 2024 12:00:00 GMT",
            "note": "keep",
        }

    def test_create(self, repo, sources_dir):
        """New sources are keyed by the URL's content hash."""
        source = repo.create("https://example.com/feed.xml")

        assert source.id == content_hash("https://example.com/feed.xml")
        stored = json.loads((sources_dir / f"{source.id}.json").read_text())
        assert stored == {"u": encode("https://example.com/feed.xml"), "etag": "", "lastModified": ""}
        assert "example.com" not in source.id

    def test_create_duplicate(self, repo):
        repo.create("https://example.com/feed.xml")
        with pytest.raises(ValidationError) as exc_info:
            repo.create("https://example.com/feed.xml")
        assert exc_info.value.error_code == ErrorCode.VALIDATION_DUPLICATE

    def test_save_failure(self, tmp_path):
        """Write failures surface as storage errors."""
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        repo = SourceRepository(str(blocker / "sources"))

        with pytest.raises(StorageError):
            repo.save(Source.from_url("aaa", "http://a"))

    def test_id_key_in_document(self, repo, sources_dir):
        """A stray id key neither overrides the file stem nor aborts listing."""
        write_source(sources_dir, "good", {"u": encode("http://g")})
        write_source(sources_dir, "other", {"u": encode("http://o"), "id": "x"})

        sources = repo.list_sources()

        assert [s.id for s in sources] == ["good", "other"]
        assert "id" not in sources[1].to_document()
