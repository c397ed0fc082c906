"""Helpers for turning a parsed Book into typing-practice material."""

from __future__ import annotations

import hashlib
import re
from typing import Sequence

from .chapters import Book, Chapter

PARAGRAPH_MARK = "¶"

_TYPEABLE_REPLACEMENTS = (
    (re.compile("[“”„«»]"), '"'),
    (re.compile("[‘’‹›]"), "'"),
    (re.compile("[—–]"), "-"),
    (re.compile("…"), "..."),
    (re.compile("[  -   ]"), " "),
    (re.compile("×"), "x"),
    (re.compile("′"), "'"),
    (re.compile("″"), '"'),
)

FRONT_MATTER_TITLES = (
    "cover",
    "copyright",
    "rights",
    "license",
    "legal notice",
    "table of contents",
    "contents",
    "toc",
    "dedication",
    "epigraph",
    "frontispiece",
    "preface",
    "foreword",
    "prologue",
    "acknowledgments",
    "acknowledgements",
    "about the author",
    "front matter",
    "title page",
)
FRONT_MATTER_MIN_LENGTH = 300
_BOILERPLATE_MARKERS = (
    "public domain",
    "project gutenberg",
    "all rights reserved",
    "copyright ©",
)


def normalize_for_typing(text: str) -> str:
    """Reduce *text* to characters found on a plain keyboard.

    Paragraph breaks become a pilcrow (typed with Enter); line wrapping
    inside a paragraph becomes a space.
    """
    for pattern, replacement in _TYPEABLE_REPLACEMENTS:
        text = pattern.sub(replacement, text)
    text = re.sub(r"\n\s*\n+", PARAGRAPH_MARK, text)
    text = text.replace("\n", " ")
    return re.sub(r"  +", " ", text)


def normalize_book(book: Book) -> Book:
    chapters = [
        Chapter(title=chapter.title, content=normalize_for_typing(chapter.content))
        for chapter in book.chapters
    ]
    return Book(title=book.title, chapters=chapters)


def is_front_matter(chapter: Chapter) -> bool:
    title = chapter.title.lower().strip()
    for skip in FRONT_MATTER_TITLES:
        if title == skip or title == f"the {skip}":
            return True
    if len(chapter.content) < FRONT_MATTER_MIN_LENGTH:
        return True
    content = chapter.content.lower()
    return any(marker in content for marker in _BOILERPLATE_MARKERS)


def find_starting_chapter(chapters: Sequence[Chapter]) -> int:
    for idx, chapter in enumerate(chapters):
        if not is_front_matter(chapter):
            return idx
    return 0


def book_hash(chapters: Sequence[Chapter]) -> str:
    full_text = "".join(chapter.title + chapter.content for chapter in chapters)
    return hashlib.sha256(full_text.encode("utf-8")).hexdigest()
