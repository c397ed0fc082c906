"""Table-of-contents resolution.

Two mutually exclusive sources are supported: the EPUB2 NCX document named by
the spine's ``toc`` attribute, and the EPUB3 navigation document. The NCX is
tried first; the navigation document is only consulted when the NCX yields no
entries. Results are never merged.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from posixpath import dirname as posix_dirname
from posixpath import join as posix_join
from typing import Dict, List, Optional, Tuple
from urllib.parse import unquote

from .archive import EpubArchive, parse_markup, parse_xml
from .errors import DegradedTocResolution, UnreadableMember
from .package import ManifestEntry, Package, normalize_location

LOGGER = logging.getLogger(__name__)

NAV_TOC_MARKER = 'epub:type="toc"'


@dataclass(frozen=True)
class TocEntry:
    label: str
    fragment: Optional[str] = None


class TocSource(enum.Enum):
    LEGACY = "ncx"
    MODERN = "nav"
    NONE = "none"


TocMap = Dict[str, List[TocEntry]]


@dataclass(frozen=True)
class TocResolution:
    source: TocSource = TocSource.NONE
    entries: TocMap = field(default_factory=dict)

    def __bool__(self) -> bool:
        return bool(self.entries)

    def entries_for(self, location: str) -> List[TocEntry]:
        return list(self.entries.get(location, []))


def split_target(target: str, toc_location: str = "") -> Tuple[str, Optional[str]]:
    """Split a TOC target into its base location and in-file anchor.

    The base is resolved against the directory of the TOC document so that it
    lines up with manifest locations.
    """
    base, _sep, fragment = (target or "").strip().partition("#")
    if base:
        toc_dir = posix_dirname(toc_location)
        base = normalize_location(posix_join(toc_dir, base) if toc_dir else base)
    elif toc_location:
        base = toc_location
    return base, (unquote(fragment) or None)


def _add_entry(entries: TocMap, target: str, label: str, toc_location: str) -> None:
    base, fragment = split_target(target, toc_location)
    if not base:
        return
    entries.setdefault(base, []).append(TocEntry(label=label, fragment=fragment))


def _load_document(archive: EpubArchive, package: Package, entry: ManifestEntry) -> str:
    path = package.path_for(entry.location)
    try:
        content = archive.read_text(path)
    except UnreadableMember as exc:
        raise DegradedTocResolution(str(exc)) from exc
    if content is None:
        raise DegradedTocResolution(f"TOC document not found: {path}")
    return content


def _legacy_entries(archive: EpubArchive, package: Package) -> TocMap:
    toc_item = package.legacy_toc_entry
    if toc_item is None:
        return {}
    content = _load_document(archive, package, toc_item)
    try:
        soup = parse_xml(content)
    except Exception as exc:
        raise DegradedTocResolution(f"Cannot parse NCX {toc_item.location}: {exc}") from exc

    entries: TocMap = {}
    for nav_point in soup.find_all("navPoint"):
        label_node = nav_point.find("navLabel")
        text_node = label_node.find("text") if label_node else None
        label = text_node.get_text().strip() if text_node else ""
        content_node = nav_point.find("content")
        target = str(content_node.get("src") or "") if content_node else ""
        if not label or not target:
            continue
        _add_entry(entries, target, label, toc_item.location)
    return entries


def _is_toc_nav(tag: object) -> bool:
    epub_type = str(tag.get("epub:type") or "")
    return "toc" in epub_type.split()


def _nav_entries(content: str, nav_location: str) -> TocMap:
    try:
        soup = parse_markup(content)
    except Exception as exc:
        raise DegradedTocResolution(f"Cannot parse nav {nav_location}: {exc}") from exc
    # Landmarks and page-list navs share the document; only fall back to the
    # first <nav> when nothing is typed as the toc.
    toc_nav = soup.find(_is_toc_nav) or soup.find("nav")
    if toc_nav is None:
        return {}
    entries: TocMap = {}
    for link in toc_nav.find_all("a"):
        label = link.get_text().strip()
        href = str(link.get("href") or "")
        if label and href:
            _add_entry(entries, href, label, nav_location)
    return entries


def _modern_entries(archive: EpubArchive, package: Package) -> TocMap:
    for item in package.manifest.values():
        if "html" not in item.media_type:
            continue
        try:
            content = _load_document(archive, package, item)
            if NAV_TOC_MARKER not in content:
                continue
            entries = _nav_entries(content, item.location)
        except DegradedTocResolution as exc:
            LOGGER.debug("Skipping nav candidate %s: %s", item.location, exc)
            continue
        if entries:
            return entries
    return {}


def resolve_toc(archive: EpubArchive, package: Package) -> TocResolution:
    try:
        entries = _legacy_entries(archive, package)
    except DegradedTocResolution as exc:
        LOGGER.warning("Ignoring NCX table of contents: %s", exc)
        entries = {}
    if entries:
        return TocResolution(TocSource.LEGACY, entries)

    entries = _modern_entries(archive, package)
    if entries:
        return TocResolution(TocSource.MODERN, entries)

    LOGGER.debug("No table of contents found; titles will be guessed")
    return TocResolution()
