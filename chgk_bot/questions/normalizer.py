"""Helpers that turn raw source markup into clean, Telegram-safe text."""

from __future__ import annotations

import re
from typing import List, Optional
from urllib.parse import urljoin


_IMAGE_BLOCK_RE = re.compile(r"<p>\s*<img[^>]*>\s*(?:</p>)?", re.IGNORECASE)
_IMAGE_SRC_RE = re.compile(r'<p>\s*<img\s+src="([^"]*)"[^>]*>', re.IGNORECASE)
_LEADING_MARKUP_RE = re.compile(r"(?:\s|</?p\b[^>]*>|<br\s*/?>)*", re.IGNORECASE)
_PARAGRAPH_OPEN_RE = re.compile(r"<p\b[^>]*>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]*>")
_LINE_BREAK_RE = re.compile(r"[ \t]*[\r\n]+[ \t]*")

_ENTITIES = {
    "&nbsp;": " ",
    "&#0150;": "-",
    "&#150;": "-",
    "&ndash;": "-",
    "&quot;": '"',
    "&amp;": "&",
    "&lt;": "<",
    "&gt;": ">",
}
_ENTITY_RE = re.compile("|".join(re.escape(entity) for entity in _ENTITIES))

MARKDOWN_V2_RESERVED = "_[]()~`>#+-=|{}.!"
_RESERVED_RE = re.compile("([" + re.escape(MARKDOWN_V2_RESERVED) + "])")
_LINK_RE = re.compile(r"\[[^\[\]]*\]\([^()\s]*\)")
_PLACEHOLDER_RE = re.compile("\x00(\\d+)\x00")


def clean_content(
    fragment: Optional[str],
    *,
    remove_images: bool = False,
    stop_at_label: bool = False,
) -> str:
    """Strip markup from a source fragment and return plain display text.

    ``remove_images`` drops embedded ``<p><img ...></p>`` blocks before the
    tags are stripped. ``stop_at_label`` cuts the fragment at the first
    paragraph opener that follows actual content, which is where loosely
    terminated sections of the legacy source end.

    The result never contains ``<`` or ``>``, even for malformed input.
    """
    if not isinstance(fragment, str) or not fragment:
        return ""

    cleaned = fragment
    if remove_images:
        cleaned = _IMAGE_BLOCK_RE.sub("", cleaned)

    if stop_at_label:
        cleaned = truncate_at_boundary(cleaned)

    cleaned = _TAG_RE.sub("", cleaned)
    cleaned = _ENTITY_RE.sub(lambda match: _ENTITIES[match.group(0)], cleaned)
    cleaned = _LINE_BREAK_RE.sub(" ", cleaned)
    cleaned = strip_angle_brackets(cleaned)
    return cleaned.strip()


def truncate_at_boundary(fragment: str) -> str:
    """Return the fragment up to the first paragraph opener after its content."""
    leading = _LEADING_MARKUP_RE.match(fragment)
    offset = leading.end() if leading else 0
    boundary = _PARAGRAPH_OPEN_RE.search(fragment, offset)
    if boundary is None:
        return fragment
    return fragment[: boundary.start()]


def strip_angle_brackets(text: str) -> str:
    return text.replace("<", "").replace(">", "")


def resolve_url(src: str, base_origin: str) -> str:
    """Resolve a root-relative image path against ``base_origin``.

    Absolute URLs are returned unchanged.
    """
    src = src.strip()
    if src.startswith("/") and not src.startswith("//"):
        return base_origin.rstrip("/") + src
    return urljoin(base_origin.rstrip("/") + "/", src)


def extract_images(fragment: Optional[str], base_origin: str) -> List[str]:
    """Collect image URLs embedded as ``<p><img src="...">`` in source order."""
    if not isinstance(fragment, str) or not fragment:
        return []

    images: List[str] = []
    for match in _IMAGE_SRC_RE.finditer(fragment):
        src = match.group(1)
        if not src.strip():
            continue
        images.append(resolve_url(src, base_origin))
    return images


def escape_markdown_v2(text: Optional[str]) -> Optional[str]:
    """Escape text for Telegram MarkdownV2 while keeping ``*`` and links intact.

    ``[label](url)`` constructs are replaced by placeholders, the remainder is
    escaped and the links are restored verbatim afterwards.
    """
    if not text:
        return text

    links: List[str] = []

    def _protect(match: re.Match[str]) -> str:
        links.append(match.group(0))
        return f"\x00{len(links) - 1}\x00"

    protected = _LINK_RE.sub(_protect, text.replace("\x00", ""))
    escaped = _RESERVED_RE.sub(r"\\\1", protected)
    return _PLACEHOLDER_RE.sub(lambda match: links[int(match.group(1))], escaped)
