from __future__ import annotations

import re
from typing import List, Optional

from bs4.element import Tag

from .config import DEFAULT_OPTIONS, ParseOptions
from .text import extract_text

HEADING_LEVELS = ("h1", "h2", "h3")
TITLE_ATTR_HINTS = ("title", "chapter", "heading")
CHAPTER_LINE_RE = re.compile(r"^chapter\s+[\divxlc]+", re.IGNORECASE)
TITLE_JOINER = " — "


def is_book_title(text: Optional[str], book_title: Optional[str]) -> bool:
    return (text or "").lower() == (book_title or "").lower()


def _attr_text(tag: Tag, name: str) -> str:
    value = tag.get(name)
    if isinstance(value, (list, tuple)):
        return " ".join(str(v) for v in value)
    return str(value or "")


def _has_title_hint(tag: Tag) -> bool:
    for attr in ("class", "id"):
        value = _attr_text(tag, attr)
        if value and any(hint in value for hint in TITLE_ATTR_HINTS):
            return True
    return False


def _accept(
    node: Optional[Tag], book_title: str, options: ParseOptions
) -> Optional[str]:
    if node is None:
        return None
    text = node.get_text().strip()
    if not text or len(text) >= options.max_title_length:
        return None
    if is_book_title(text, book_title):
        return None
    return text


def body_lines(soup: Tag) -> List[str]:
    text = extract_text(soup.find("body"))
    return [line.strip() for line in text.split("\n") if line.strip()]


def _looks_like_line_title(line: str, options: ParseOptions) -> bool:
    return len(line) < options.max_line_title_length and "." not in line


def find_chapter_title(
    soup: Tag,
    book_title: str,
    fallback_number: int,
    options: ParseOptions = DEFAULT_OPTIONS,
) -> str:
    """Guess a title for a chapter file that has no usable TOC label.

    Strategies, first hit wins:
    first h1, else first h2, else first h3; first element whose class or id
    mentions a title; the document ``<title>``; a ``Chapter N`` line followed
    by a short subtitle line; a short first line; ``Chapter <n>``.
    """
    for level in HEADING_LEVELS:
        title = _accept(soup.find(level), book_title, options)
        if title:
            return title

    title = _accept(soup.find(_has_title_hint), book_title, options)
    if title:
        return title

    title = _accept(soup.find("title"), book_title, options)
    if title:
        return title

    lines = body_lines(soup)
    if lines:
        first = lines[0]
        if (
            CHAPTER_LINE_RE.match(first)
            and len(lines) > 1
            and _looks_like_line_title(lines[1], options)
        ):
            return f"{first}{TITLE_JOINER}{lines[1]}"
        if _looks_like_line_title(first, options) and not is_book_title(first, book_title):
            return first

    return options.fallback(fallback_number)
