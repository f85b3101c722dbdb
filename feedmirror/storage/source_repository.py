"""
Source Repository
=================

Reads and updates the per-source configuration documents in
``<sources_dir>/<sourceId>.json``. The file stem is the source id.
"""

import json
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError as PydanticValidationError

from ..models import Source
from ..processing.addressing import content_hash
from ..utils.exceptions import ErrorCode, StorageError, ValidationError
from ..utils.logging import get_logger_for_component
from .filesystem import atomic_write_text


class SourceRepository:
    """File-backed store of Source documents."""

    def __init__(self, sources_dir: str):
        self.sources_dir = Path(sources_dir)
        self.logger = get_logger_for_component("source_repository")

    def path_for(self, source_id: str) -> Path:
        return self.sources_dir / f"{source_id}.json"

    def _load(self, path: Path) -> Source:
        try:
            document = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(
                f"Cannot read source document {path.name}: {e}",
                key=str(path),
                error_code=ErrorCode.STORAGE_READ_FAILED,
            ) from e

        if not isinstance(document, dict):
            raise ValidationError(f"Source document {path.name} is not an object")

        # The file stem is the id; a stray "id" key in the document is ignored
        try:
            return Source(**{**document, "id": path.stem})
        except (PydanticValidationError, TypeError) as e:
            raise ValidationError(
                f"Invalid source document {path.name}: {e}", field_name="u"
            ) from e

    def list_sources(self) -> List[Source]:
        """All readable sources, ordered by id. Broken documents are logged and skipped."""
        if not self.sources_dir.is_dir():
            self.logger.warning(f"Sources directory {self.sources_dir} does not exist")
            return []

        sources = []
        for path in sorted(self.sources_dir.glob("*.json")):
            try:
                sources.append(self._load(path))
            except (StorageError, ValidationError) as e:
                self.logger.error(f"Skipping source {path.stem}: {e}", extra={"source_id": path.stem})
        return sources

    def get(self, source_id: str) -> Optional[Source]:
        path = self.path_for(source_id)
        if not path.exists():
            return None
        return self._load(path)

    def save(self, source: Source) -> None:
        """Rewrite the source document in place."""
        path = self.path_for(source.id)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            atomic_write_text(path, source.to_json())
        except OSError as e:
            raise StorageError(
                f"Cannot write source document {path.name}: {e}", key=str(path)
            ) from e

    def create(self, url: str) -> Source:
        """Register a feed URL. The id is the URL's content hash.

        Raises:
            ValidationError: If a source with that id already exists
        """
        source = Source.from_url(content_hash(url), url)
        if self.path_for(source.id).exists():
            raise ValidationError(
                f"Source {source.id} already exists",
                field_name="url",
                error_code=ErrorCode.VALIDATION_DUPLICATE,
            )
        self.save(source)
        return source
