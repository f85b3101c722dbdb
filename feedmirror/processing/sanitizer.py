"""
HTML Sanitizer
==============

Allow-list HTML sanitizer for item bodies built on BeautifulSoup.

Only tags named in the policy survive; everything else is unwrapped (its
text kept) or, for non-text containers such as ``<script>``, removed along
with its content. Attributes are scoped per tag and URL-bearing attributes
are restricted to a set of schemes, so event handlers and ``javascript:``
URLs cannot get through.
"""

import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import FrozenSet, Mapping, Optional

from bs4 import BeautifulSoup, Comment
from bs4.element import CData, Declaration, Doctype, ProcessingInstruction

from ..utils.logging import get_logger_for_component


def _frozen_attributes(mapping: Mapping[str, object]) -> Mapping[str, FrozenSet[str]]:
    return MappingProxyType({tag: frozenset(attrs) for tag, attrs in mapping.items()})


@dataclass(frozen=True)
class SanitizerPolicy:
    """Immutable description of what markup may survive sanitization."""

    allowed_tags: FrozenSet[str]
    allowed_attributes: Mapping[str, FrozenSet[str]]
    # Removed together with their content
    non_text_tags: FrozenSet[str] = frozenset(
        {"script", "style", "textarea", "option", "noscript"}
    )
    url_attributes: FrozenSet[str] = frozenset({"href", "src"})
    allowed_schemes: FrozenSet[str] = frozenset({"http", "https", "ftp", "mailto", "tel"})

    @classmethod
    def create(cls, allowed_tags, allowed_attributes, **kwargs) -> "SanitizerPolicy":
        """Build a policy from plain iterables/dicts."""
        return cls(
            allowed_tags=frozenset(allowed_tags),
            allowed_attributes=_frozen_attributes(allowed_attributes),
            **kwargs,
        )

    def attributes_for(self, tag_name: str) -> FrozenSet[str]:
        return self.allowed_attributes.get(tag_name, frozenset())


DEFAULT_POLICY = SanitizerPolicy.create(
    allowed_tags=[
        "h1", "h2", "h3", "h4", "h5", "h6",
        "p", "ul", "li", "strong", "em", "a", "br", "div", "img", "span",
    ],
    allowed_attributes={
        "a": ["href", "rel", "target"],
        "img": ["loading", "src", "alt", "title"],
        "span": ["class", "style"],
    },
)

_SCHEME_PATTERN = re.compile(r"^([a-zA-Z][a-zA-Z0-9+.\-]*):")
# Browsers ignore these inside a scheme, e.g. "java\tscript:"
_IGNORED_URL_CHARS = re.compile(r"[\x00-\x20\x7f]+")
_NON_CONTENT_NODES = (CData, Comment, Doctype, Declaration, ProcessingInstruction)


class HtmlSanitizer:
    """Sanitizes HTML fragments against a SanitizerPolicy."""

    def __init__(self, policy: SanitizerPolicy = DEFAULT_POLICY):
        self.policy = policy
        self.parser = "html.parser"
        self.logger = get_logger_for_component("sanitizer")

    def sanitize(self, html_content: Optional[str]) -> str:
        """Return ``html_content`` reduced to the policy's allow-list.

        Args:
            html_content: Raw HTML fragment (may be None)

        Returns:
            Sanitized HTML, or "" for empty input
        """
        if not html_content:
            return ""

        soup = BeautifulSoup(html_content, self.parser)

        for node in list(soup.descendants):
            if isinstance(node, _NON_CONTENT_NODES):
                node.extract()

        for tag in soup.find_all(list(self.policy.non_text_tags)):
            if not tag.decomposed:
                tag.decompose()

        for tag in soup.find_all(True):
            if tag.name not in self.policy.allowed_tags:
                tag.unwrap()
            else:
                self._clean_attributes(tag)

        return soup.decode(formatter="minimal")

    def _clean_attributes(self, tag) -> None:
        allowed = self.policy.attributes_for(tag.name)
        for name in list(tag.attrs):
            if name not in allowed:
                del tag.attrs[name]
            elif name in self.policy.url_attributes and not self._is_safe_url(tag.attrs[name]):
                self.logger.debug(f"Dropped unsafe {tag.name}[{name}] value")
                del tag.attrs[name]

    def _is_safe_url(self, value) -> bool:
        if isinstance(value, list):
            value = " ".join(value)
        normalized = _IGNORED_URL_CHARS.sub("", value or "")
        match = _SCHEME_PATTERN.match(normalized)
        if not match:
            # Relative URLs and fragments
            return True
        return match.group(1).lower() in self.policy.allowed_schemes


_default_sanitizer: Optional[HtmlSanitizer] = None


def sanitize(html_content: Optional[str], policy: Optional[SanitizerPolicy] = None) -> str:
    """Sanitize with the given policy, or the default allow-list."""
    global _default_sanitizer

    if policy is not None:
        return HtmlSanitizer(policy).sanitize(html_content)
    if _default_sanitizer is None:
        _default_sanitizer = HtmlSanitizer()
    return _default_sanitizer.sanitize(html_content)
