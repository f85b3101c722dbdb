"""
Item Processor
==============

Turns a parsed feed entry into the published item document: body
sanitized, title rendered as headings, origin replaced by the opaque source
id.
"""

import calendar
import time
from typing import Callable, Optional

from ..config.settings import FeedMirrorSettings, get_settings
from ..ingestion.feed_parser import RawItem
from ..models import ProcessedItem
from ..utils.exceptions import ErrorCode, ProcessingError
from .sanitizer import HtmlSanitizer
from .title_formatter import TitleFormatter


def to_epoch_millis(published_parsed: Optional[time.struct_time]) -> Optional[int]:
    """Epoch milliseconds for a UTC struct_time, or None if unusable."""
    if not published_parsed:
        return None
    try:
        return calendar.timegm(published_parsed) * 1000
    except (TypeError, ValueError, OverflowError):
        return None


class ItemProcessor:
    """Builds ProcessedItem documents from RawItems."""

    def __init__(
        self,
        settings: Optional[FeedMirrorSettings] = None,
        sanitizer: Optional[HtmlSanitizer] = None,
        title_formatter: Optional[TitleFormatter] = None,
        clock: Callable[[], float] = time.time,
    ):
        settings = settings or get_settings()
        self.sanitizer = sanitizer or HtmlSanitizer()
        self.title_formatter = title_formatter or TitleFormatter.from_settings(
            settings.formatting
        )
        self.clock = clock

    def process(self, raw: RawItem, source_id: str) -> ProcessedItem:
        """Build the published document for ``raw``.

        Raises:
            ProcessingError: If the item has neither guid nor link
        """
        identifier = raw.identifier
        if not identifier:
            raise ProcessingError(
                "Item has neither guid nor link",
                error_code=ErrorCode.CONTENT_MISSING_IDENTIFIER,
                context={"source_id": source_id},
            )

        title = self.title_formatter.strip_suffix(raw.title or "", raw.link)
        timestamp = to_epoch_millis(raw.published_parsed)
        if timestamp is None:
            timestamp = int(self.clock() * 1000)

        return ProcessedItem(
            guid=identifier,
            title=self.title_formatter.format(title, raw.link),
            link=raw.link,
            pubDate=raw.pub_date,
            description=self.sanitizer.sanitize(raw.body),
            timestamp=timestamp,
            source=source_id,
            category="",
        )
