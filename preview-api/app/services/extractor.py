"""Pull link-preview metadata out of raw HTML.

Extraction is pattern based: no DOM is built. Each field has an ordered list of
sources and a later non-empty source overrides an earlier one, so Open Graph
tags win over the plain ``<title>`` element and ``description`` meta tag.

Meta tags are located through a small ordered list of :class:`MetaRule`
entries. A rule names the marker attribute (``name`` or ``property``) and
whether that marker comes before or after ``content=``. The first rule that
yields a non-empty value wins, and within a rule the first tag in document
order wins.

Every pattern here stops at the next ``<``, so a document is scanned in time
proportional to its size no matter how many unclosed tags it contains.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from app.schemas.preview import PartialMetadata

TITLE_ELEMENT = "<title>"
MARKERS = ("name", "property")

_TITLE_PATTERN = re.compile(r"<title\b[^<>]*>([^<]*)</title\s*>", re.IGNORECASE)
# A meta tag up to its closing ``>``; quoted values may hold ``>`` but not ``<``.
_META_TAG = re.compile(r"""<meta\b(?:[^<>"']+|"[^"<]*"|'[^'<]*')*""", re.IGNORECASE)
_ATTRIBUTE = re.compile(
    r"""([^\s=<>"'/]+)(?:\s*=\s*(?:"(?P<dq>[^"]*)"|'(?P<sq>[^']*)'))?"""
)
_TAG_NAME_LENGTH = len("<meta")


@dataclass(frozen=True)
class MetaRule:
    marker: str
    content_first: bool = False


META_RULES: tuple[MetaRule, ...] = (
    MetaRule("name"),
    MetaRule("property"),
    MetaRule("name", content_first=True),
    MetaRule("property", content_first=True),
)

# Sources per field, lowest precedence first.
FIELD_SOURCES: dict[str, tuple[str, ...]] = {
    "title": (TITLE_ELEMENT, "og:title"),
    "description": ("description", "og:description"),
    "image": ("og:image",),
    "site_name": ("og:site_name",),
}

MetaIndex = dict[tuple[MetaRule, str], str]


def decode_markup(markup: str | bytes, encoding: str | None = None) -> str:
    if isinstance(markup, str):
        return markup
    try:
        return markup.decode(encoding or "utf-8", errors="replace")
    except LookupError:
        # Unknown charset label from the server
        return markup.decode("utf-8", errors="replace")


def extract_title(html: str) -> str:
    match = _TITLE_PATTERN.search(html)
    return match.group(1).strip() if match else ""


def _attributes(tag: str) -> list[tuple[str, str | None]]:
    """Attribute names (lower-cased) and quoted values, in source order."""
    attributes = []
    for match in _ATTRIBUTE.finditer(tag, _TAG_NAME_LENGTH):
        value = match.group("dq")
        if value is None:
            value = match.group("sq")
        attributes.append((match.group(1).lower(), value))
    return attributes


def _index_tag(attributes: list[tuple[str, str | None]], index: MetaIndex) -> None:
    # Nearest quoted content= on each side of every quoted marker.
    count = len(attributes)
    content_before: list[str | None] = [None] * count
    content_after: list[str | None] = [None] * count
    last = None
    for position, (name, value) in enumerate(attributes):
        content_before[position] = last
        if name == "content" and value is not None:
            last = value
    last = None
    for position in range(count - 1, -1, -1):
        name, value = attributes[position]
        content_after[position] = last
        if name == "content" and value is not None:
            last = value

    for position, (name, key) in enumerate(attributes):
        if name not in MARKERS or key is None:
            continue
        for content_first, content in (
            (False, content_after[position]),
            (True, content_before[position]),
        ):
            if content is None or not content.strip():
                continue
            index.setdefault((MetaRule(name, content_first), key.lower()), content.strip())


def index_meta_tags(html: str) -> MetaIndex:
    """Map every (rule, key) pair to its first non-empty value in the document."""
    index: MetaIndex = {}
    for match in _META_TAG.finditer(html):
        tag = match.group(0)
        lowered = tag.lower()
        if "content" not in lowered or not any(m in lowered for m in MARKERS):
            continue
        _index_tag(_attributes(tag), index)
    return index


def _lookup(index: MetaIndex, key: str) -> str:
    key = key.lower()
    for rule in META_RULES:
        value = index.get((rule, key))
        if value:
            return value
    return ""


def extract_meta_content(html: str, key: str) -> str:
    """Return the trimmed ``content`` of the first meta tag tagged ``key``."""
    return _lookup(index_meta_tags(html), key)


def _resolve(html: str, index: MetaIndex, sources: tuple[str, ...]) -> str:
    resolved = ""
    for source in sources:
        if source == TITLE_ELEMENT:
            value = extract_title(html)
        else:
            value = _lookup(index, source)
        if value:
            resolved = value
    return resolved


def extract(markup: str | bytes, encoding: str | None = None) -> PartialMetadata:
    """Extract preview metadata from ``markup``.

    Never raises on malformed input; a field without a match is returned as an
    empty string. Values are returned as written (no unescaping and no URL
    resolution for ``image``).
    """
    html = decode_markup(markup, encoding)
    index = index_meta_tags(html)
    return PartialMetadata(
        **{
            field: _resolve(html, index, sources)
            for field, sources in FIELD_SOURCES.items()
        }
    )
