"""
HTML Utilities

Title and visible-text extraction for fetched citation pages.
"""

import html
import re
from typing import Optional

_TITLE_RE = re.compile(r"<title[^>]*>([\s\S]*?)</title>", re.IGNORECASE)
# Blocks whose text is boilerplate rather than page content.
_STRIP_BLOCKS = ("script", "style", "nav", "header", "footer")
_BLOCK_RES = [
    re.compile(rf"<{tag}[^>]*>[\s\S]*?</{tag}>", re.IGNORECASE) for tag in _STRIP_BLOCKS
]
_TAG_RE = re.compile(r"<[^>]+>")
_WS_RE = re.compile(r"\s+")


def html_unescape(text: Optional[str]) -> Optional[str]:
    """
    Unescape HTML entities in text.

    Args:
        text: Text that may contain HTML entities

    Returns:
        Unescaped text, or the input unchanged when empty
    """
    if not text:
        return text
    return html.unescape(text)


def extract_title(page_html: str) -> Optional[str]:
    """
    Extract the ``<title>`` of an HTML document.

    Args:
        page_html: Raw HTML

    Returns:
        Whitespace-collapsed title, or None when the document has none
    """
    match = _TITLE_RE.search(page_html)
    if not match:
        return None
    title = _WS_RE.sub(" ", html.unescape(match.group(1))).strip()
    return title or None


def extract_text_content(page_html: str) -> str:
    """
    Strip boilerplate blocks and tags, returning visible text.

    Args:
        page_html: Raw HTML

    Returns:
        Whitespace-collapsed text
    """
    text = page_html
    for block_re in _BLOCK_RES:
        text = block_re.sub("", text)
    text = _TAG_RE.sub(" ", text)
    text = html.unescape(text).replace("\xa0", " ")
    return _WS_RE.sub(" ", text).strip()
