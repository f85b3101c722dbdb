"""
Title Formatter
===============

Renders an item title as a self-contained heading block: the first
delimiter-separated segment becomes a linked ``<h1>``, every further segment
an ``<h2>``.
"""

import html
import re
from typing import Iterable, Mapping, Optional, Sequence
from urllib.parse import urlparse

from ..config.settings import DEFAULT_TITLE_DELIMITERS


class TitleFormatter:
    """Splits titles on literal delimiters and renders heading HTML."""

    def __init__(
        self,
        delimiters: Sequence[str] = tuple(DEFAULT_TITLE_DELIMITERS),
        missing_title: str = "No Title",
        missing_link: str = "#",
        suffix_rules: Optional[Mapping[str, str]] = None,
    ):
        if not delimiters:
            raise ValueError("at least one title delimiter is required")
        self.delimiters = tuple(delimiters)
        self.missing_title = missing_title
        self.missing_link = missing_link
        self.suffix_rules = dict(suffix_rules or {})
        # Longest first so a delimiter containing another one wins
        ordered = sorted(self.delimiters, key=len, reverse=True)
        self._split_pattern = re.compile("|".join(re.escape(d) for d in ordered))

    @classmethod
    def from_settings(cls, formatting) -> "TitleFormatter":
        return cls(
            delimiters=formatting.title_delimiters,
            missing_title=formatting.missing_title,
            missing_link=formatting.missing_link,
            suffix_rules=formatting.title_suffix_rules,
        )

    def split(self, title: str) -> Iterable[str]:
        return self._split_pattern.split(title)

    def strip_suffix(self, title: str, link: Optional[str]) -> str:
        """Remove a configured site suffix (e.g. " | Hacker News") for the link's domain."""
        if not title or not link or not self.suffix_rules:
            return title

        hostname = (urlparse(link).hostname or "").lower()
        if hostname.startswith("www."):
            hostname = hostname[4:]

        for domain, suffix in self.suffix_rules.items():
            if domain in hostname:
                title = title.replace(suffix, "")
        return title

    def format(self, title: Optional[str], link: Optional[str]) -> str:
        """Render ``title`` as an ``<h1>`` linked to ``link`` plus ``<h2>`` subtitles."""
        title = title or self.missing_title
        link = link or self.missing_link

        first, *rest = self.split(title)
        parts = [
            f'<h1><a href="{html.escape(link, quote=True)}" target="_blank">'
            f"{html.escape(first, quote=False)}</a></h1>"
        ]
        parts.extend(f"<h2>{html.escape(segment, quote=False)}</h2>" for segment in rest)
        return "".join(parts)


_default_formatter = TitleFormatter()


def format_title(title: Optional[str], link: Optional[str]) -> str:
    """Format with the default delimiters and placeholders."""
    return _default_formatter.format(title, link)
