from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from bs4 import BeautifulSoup
from bs4.element import PageElement, Tag

from .archive import EpubArchive, Source, parse_markup
from .config import DEFAULT_OPTIONS, ParseOptions
from .errors import SkippedContentFile, UnreadableMember
from .package import ManifestEntry, Package, resolve_package
from .text import extract_text
from .titles import find_chapter_title, is_book_title
from .toc import TocEntry, TocResolution, resolve_toc

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class Chapter:
    title: str
    content: str

    def to_dict(self) -> dict:
        return {"title": self.title, "content": self.content}


@dataclass(frozen=True)
class Book:
    title: str
    chapters: List[Chapter] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "chapters": [chapter.to_dict() for chapter in self.chapters],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Book":
        chapters = [
            Chapter(title=str(item.get("title") or ""), content=str(item.get("content") or ""))
            for item in data.get("chapters") or []
        ]
        return cls(title=str(data.get("title") or ""), chapters=chapters)


def _document_positions(body: Tag) -> Tuple[Dict[int, int], Dict[int, int]]:
    """Map every node under *body* to its document-order index and last descendant index."""
    start: Dict[int, int] = {}
    for idx, node in enumerate(body.descendants):
        start[id(node)] = idx
    last: Dict[int, int] = {}
    for node in body.descendants:
        key = id(node)
        if isinstance(node, Tag):
            last[key] = start[key] + sum(1 for _ in node.descendants)
        else:
            last[key] = start[key]
    return start, last


def _clone_range(
    soup: BeautifulSoup,
    node: Tag,
    begin: int,
    end: int,
    start: Dict[int, int],
    last: Dict[int, int],
) -> List[PageElement]:
    clones: List[PageElement] = []
    for child in node.children:
        key = id(child)
        first_idx = start[key]
        last_idx = last[key]
        if last_idx < begin or first_idx >= end:
            continue
        if first_idx >= begin and last_idx < end:
            clones.append(copy.copy(child))
            continue
        # Partially covered: keep the element as an empty shell around the covered part.
        shell = soup.new_tag(child.name, attrs=dict(child.attrs))
        for clone in _clone_range(soup, child, begin, end, start, last):
            shell.append(clone)
        clones.append(shell)
    return clones


def split_by_fragments(
    soup: BeautifulSoup,
    fragment_entries: Sequence[TocEntry],
    book_title: str,
) -> List[Chapter]:
    """Cut one content document into chapters at the TOC anchor elements.

    Each chapter runs from its anchor element up to the next anchor element,
    the last one to the end of the body.
    """
    body = soup.find("body")
    if body is None:
        return []
    start, last = _document_positions(body)

    markers: List[Tuple[TocEntry, Tag]] = []
    for entry in fragment_entries:
        element = soup.find(attrs={"id": entry.fragment})
        if element is None or id(element) not in start:
            LOGGER.debug("TOC anchor #%s not found", entry.fragment)
            continue
        markers.append((entry, element))
    markers = [m for m in markers if not is_book_title(m[0].label, book_title)]

    chapters: List[Chapter] = []
    for idx, (entry, element) in enumerate(markers):
        begin = start[id(element)]
        if idx + 1 < len(markers):
            end = start[id(markers[idx + 1][1])]
        else:
            end = len(start)
        wrapper = soup.new_tag("div")
        for clone in _clone_range(soup, body, begin, end, start, last):
            wrapper.append(clone)
        text = extract_text(wrapper)
        if not text:
            LOGGER.debug("Discarding empty fragment chapter %r", entry.label)
            continue
        chapters.append(Chapter(title=entry.label, content=text))
    return chapters


def _load_content(
    archive: EpubArchive, package: Package, entry: ManifestEntry
) -> BeautifulSoup:
    if not entry.is_markup:
        raise SkippedContentFile(f"{entry.location} is not markup ({entry.media_type!r})")
    path = package.path_for(entry.location)
    try:
        content = archive.read_bytes(path)
    except UnreadableMember as exc:
        raise SkippedContentFile(str(exc)) from exc
    if content is None:
        raise SkippedContentFile(f"{path} is missing from the archive")
    return parse_markup(content)


def iter_chapters(
    archive: EpubArchive,
    package: Package,
    toc: TocResolution,
    options: ParseOptions = DEFAULT_OPTIONS,
) -> Iterator[Chapter]:
    """Yield chapters in reading order.

    Stopping early is safe: every chapter already yielded stays valid.
    """
    produced = 0
    for entry in package.reading_order:
        try:
            soup = _load_content(archive, package, entry)
        except SkippedContentFile as exc:
            LOGGER.debug("Skipping spine item %s: %s", entry.id, exc)
            continue

        file_entries = toc.entries_for(entry.location)
        fragment_entries = [e for e in file_entries if e.fragment]
        if len(fragment_entries) > 1:
            for chapter in split_by_fragments(soup, fragment_entries, package.title):
                produced += 1
                yield chapter
            continue

        text = extract_text(soup.find("body"))
        if not text:
            LOGGER.debug("Discarding empty chapter from %s", entry.location)
            continue
        if file_entries and not is_book_title(file_entries[0].label, package.title):
            title = file_entries[0].label
        else:
            title = find_chapter_title(soup, package.title, produced + 1, options)
        produced += 1
        yield Chapter(title=title, content=text)


def parse_epub(source: Source, options: Optional[ParseOptions] = None) -> Book:
    """Parse the EPUB at *source* (a path or binary file object) into a Book.

    Raises MalformedPackage when the container or package document is unusable;
    every later problem only costs chapters.
    """
    options = options or DEFAULT_OPTIONS
    with EpubArchive(source) as archive:
        package = resolve_package(archive, untitled=options.untitled)
        toc = resolve_toc(archive, package)
        chapters = list(iter_chapters(archive, package, toc, options))
    return Book(title=package.title, chapters=chapters)
