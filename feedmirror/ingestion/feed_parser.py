"""
Feed Parser
===========

Parses fetched RSS/Atom payloads into ordered raw items using feedparser.

RSS ``content:encoded`` and Atom ``<content>`` both surface in feedparser's
``entry.content`` list; they are reported separately here depending on the
feed flavour so the body precedence (encoded content > content > summary >
description) can be applied explicitly.
"""

import time
from dataclasses import dataclass
from typing import Any, List, Optional

import feedparser

from ..utils.exceptions import FeedParseError
from ..utils.logging import get_logger_for_component

logger = get_logger_for_component("feed_parser")


def first_present(*candidates: Optional[str]) -> Optional[str]:
    """Return the first candidate that is a non-empty string, else None."""
    for candidate in candidates:
        if candidate:
            return candidate
    return None


@dataclass(frozen=True)
class RawItem:
    """A feed entry as parsed, before any transformation."""

    guid: Optional[str] = None
    link: Optional[str] = None
    title: Optional[str] = None
    pub_date: Optional[str] = None
    published_parsed: Optional[time.struct_time] = None
    content_encoded: Optional[str] = None
    content: Optional[str] = None
    summary: Optional[str] = None
    description: Optional[str] = None

    @property
    def body(self) -> Optional[str]:
        """First non-empty body candidate in order of preference."""
        return first_present(
            self.content_encoded, self.content, self.summary, self.description
        )

    @property
    def identifier(self) -> Optional[str]:
        """Stable identity: guid if present, else link."""
        return first_present(self.guid, self.link)


def _text(entry: Any, key: str) -> Optional[str]:
    value = entry.get(key)
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return None


def _content_value(entry: Any) -> Optional[str]:
    for block in entry.get("content") or []:
        value = block.get("value") if hasattr(block, "get") else None
        if value and value.strip():
            return value
    return None


def _entry_to_item(entry: Any, is_atom: bool) -> RawItem:
    content = _content_value(entry)
    published_parsed = entry.get("published_parsed") or entry.get("updated_parsed")

    return RawItem(
        guid=_text(entry, "id"),
        link=_text(entry, "link"),
        title=_text(entry, "title"),
        pub_date=_text(entry, "published") or _text(entry, "updated"),
        published_parsed=published_parsed,
        content_encoded=None if is_atom else content,
        content=content if is_atom else None,
        summary=entry.get("summary") or None,
        description=entry.get("description") or None,
    )


def parse_feed(content: bytes, source_id: Optional[str] = None) -> List[RawItem]:
    """Parse a feed payload into raw items, preserving feed order.

    Args:
        content: Raw response body
        source_id: Source id used for error context

    Returns:
        Raw items in document order (possibly empty)

    Raises:
        FeedParseError: If the payload is not a recognisable RSS/Atom feed
    """
    parsed = feedparser.parse(content)
    version = parsed.get("version") or ""

    if parsed.bozo and not parsed.entries:
        raise FeedParseError(
            f"Malformed feed: {parsed.get('bozo_exception')}",
            source_id=source_id,
        )
    if not version:
        raise FeedParseError("Payload is not an RSS or Atom feed", source_id=source_id)

    if parsed.bozo:
        logger.warning(
            f"Feed parsed with warnings: {parsed.get('bozo_exception')}",
            extra={"source_id": source_id},
        )

    is_atom = version.startswith("atom")
    items = [_entry_to_item(entry, is_atom) for entry in parsed.entries]

    logger.debug(
        f"Parsed {len(items)} entries ({version})", extra={"source_id": source_id}
    )
    return items
