"""
HTML content extraction utilities.
"""

from __future__ import annotations

import re
from typing import Optional

from bs4 import BeautifulSoup

_BASIC_ENTITIES = {
    "&quot;": '"',
    "&#34;": '"',
    "&#39;": "'",
    "&apos;": "'",
    "&lt;": "<",
    "&gt;": ">",
    "&nbsp;": " ",
    "&amp;": "&",  # last, so "&amp;quot;" decodes one level only
}

_BLOCK_TAGS = ("p", "div", "li", "section", "article", "br", "tr", "h1", "h2", "h3", "h4", "h5", "h6")


def decode_basic_entities(s: str) -> str:
    """Decode the handful of entities commonly found inside escaped script blocks."""
    if not s:
        return ""
    for entity, char in _BASIC_ENTITIES.items():
        s = s.replace(entity, char)
    return s


def html_to_text(html: str, max_len: Optional[int] = None) -> str:
    """
    Convert HTML (possibly entity-escaped) to readable plain text.

    Block elements become line breaks; runs of spaces collapse.
    """
    if not html:
        return ""

    # Some ATS payloads ship the description HTML entity-escaped
    if "&lt;" in html and "<" not in html:
        html = decode_basic_entities(html)

    soup = BeautifulSoup(html, "lxml")
    for tag in soup(["script", "style", "noscript", "iframe", "svg", "canvas"]):
        tag.decompose()
    for tag in soup.find_all(_BLOCK_TAGS):
        tag.insert_after("\n")

    text = soup.get_text(" ")
    text = text.replace("\u00a0", " ")
    text = re.sub(r"[ \t\r\f\v]+", " ", text)
    text = re.sub(r" ?\n ?", "\n", text)
    text = re.sub(r"\n{3,}", "\n\n", text).strip()

    if max_len is not None:
        return text[:max_len]
    return text


def extract_page_title(html: str) -> str:
    """Extract the page <title>, falling back to the first <h1>."""
    if not html:
        return ""

    soup = BeautifulSoup(html, "lxml")

    if soup.title and soup.title.string:
        return soup.title.string.strip()

    h1 = soup.find("h1")
    if h1:
        return h1.get_text(strip=True)

    return ""
