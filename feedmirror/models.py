"""
FeedMirror Data Models
======================

Pydantic models for the documents FeedMirror reads and publishes: source
configuration documents and processed item documents. Field aliases match
the published JSON keys.
"""

import base64
import binascii
import json
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from .utils.exceptions import ValidationError


def _dump_json(document: Any) -> str:
    return json.dumps(document, indent=2, ensure_ascii=False)


class Source(BaseModel):
    """A configured feed endpoint.

    The feed URL is only ever stored base64-encoded; the id is the document's
    file stem and is never written into the document itself.
    """
    id: str = Field(..., min_length=1, exclude=True, description="Opaque source id")
    encoded_url: str = Field(..., alias="u", description="Base64-encoded feed URL")
    etag: Optional[str] = Field(default=None, description="Cached ETag validator")
    last_modified: Optional[str] = Field(
        default=None, alias="lastModified", description="Cached Last-Modified validator"
    )

    model_config = {
        "extra": "allow",
        "populate_by_name": True,
    }

    @classmethod
    def from_url(cls, source_id: str, url: str) -> "Source":
        """Build a source for a plain feed URL."""
        encoded = base64.b64encode(url.encode("utf-8")).decode("ascii")
        return cls(id=source_id, u=encoded, etag="", lastModified="")

    @property
    def feed_url(self) -> str:
        """Decoded feed URL.

        Raises:
            ValidationError: If the stored value is not base64 of UTF-8 text
        """
        try:
            return base64.b64decode(self.encoded_url).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as e:
            raise ValidationError(
                f"Source {self.id} has an undecodable feed URL: {e}",
                field_name="u",
            ) from e

    @property
    def has_validators(self) -> bool:
        return bool(self.etag or self.last_modified)

    def with_validators(self, etag: Optional[str], last_modified: Optional[str]) -> "Source":
        """Return a copy carrying new cache validators (absent ones stored as "")."""
        return self.model_copy(
            update={"etag": etag or "", "last_modified": last_modified or ""}
        )

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)

    def to_json(self) -> str:
        return _dump_json(self.to_document())


class ProcessedItem(BaseModel):
    """A published item document. Immutable once written."""
    guid: str = Field(..., min_length=1, description="Stable item identifier (guid, else link)")
    title: str = Field(..., description="Formatted HTML title")
    link: Optional[str] = Field(default=None, description="Item link")
    pub_date: Optional[str] = Field(default=None, alias="pubDate", description="Publish date as given by the feed")
    description: str = Field(default="", description="Sanitized HTML body")
    timestamp: int = Field(..., description="Publish time in epoch milliseconds")
    source: str = Field(..., description="Owning source id")
    category: str = Field(default="", description="Reserved, always empty")

    model_config = {
        "populate_by_name": True,
        "frozen": True,
    }

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)

    def to_json(self) -> str:
        return _dump_json(self.to_document())
