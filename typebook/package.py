from __future__ import annotations

import logging
from dataclasses import dataclass, field
from posixpath import dirname as posix_dirname
from posixpath import normpath as posix_normpath
from typing import Dict, List, Optional
from urllib.parse import unquote

from .archive import EpubArchive, parse_xml
from .config import DEFAULT_OPTIONS
from .errors import MalformedPackage, UnreadableMember

LOGGER = logging.getLogger(__name__)

CONTAINER_PATH = "META-INF/container.xml"
UNTITLED = DEFAULT_OPTIONS.untitled


@dataclass(frozen=True)
class ManifestEntry:
    id: str
    location: str
    media_type: str = ""

    @property
    def is_markup(self) -> bool:
        return "html" in self.media_type or "xml" in self.media_type


@dataclass(frozen=True)
class Package:
    """Everything the root descriptor (OPF) tells us about the book."""

    title: str
    root_path: str
    directory_prefix: str
    manifest: Dict[str, ManifestEntry] = field(default_factory=dict)
    reading_order: List[ManifestEntry] = field(default_factory=list)
    legacy_toc_id: Optional[str] = None

    def path_for(self, location: str) -> str:
        if not self.directory_prefix:
            return location
        return posix_normpath(self.directory_prefix + location)

    @property
    def legacy_toc_entry(self) -> Optional[ManifestEntry]:
        if not self.legacy_toc_id:
            return None
        return self.manifest.get(self.legacy_toc_id)


def normalize_location(href: str) -> str:
    href = unquote((href or "").strip())
    if not href:
        return ""
    return posix_normpath(href)


def find_root_path(archive: EpubArchive) -> str:
    try:
        container = archive.read_text(CONTAINER_PATH)
    except UnreadableMember as exc:
        raise MalformedPackage(f"Invalid EPUB: {exc}") from exc
    if container is None:
        raise MalformedPackage("Invalid EPUB: missing container.xml")
    soup = parse_xml(container)
    rootfile = soup.find("rootfile")
    root_path = str(rootfile.get("full-path") or "").strip() if rootfile else ""
    if not root_path:
        raise MalformedPackage("Invalid EPUB: cannot find OPF file path")
    return root_path


def _book_title(soup: object, untitled: str) -> str:
    metadata = soup.find("metadata")
    title_node = (metadata or soup).find("title")
    if title_node is None:
        return untitled
    title = title_node.get_text().strip()
    return title or untitled


def _manifest(soup: object) -> Dict[str, ManifestEntry]:
    manifest: Dict[str, ManifestEntry] = {}
    container = soup.find("manifest") or soup
    for item in container.find_all("item"):
        item_id = str(item.get("id") or "")
        href = normalize_location(str(item.get("href") or ""))
        if not item_id or not href:
            continue
        manifest[item_id] = ManifestEntry(
            id=item_id,
            location=href,
            media_type=str(item.get("media-type") or ""),
        )
    return manifest


def resolve_package(archive: EpubArchive, untitled: str = UNTITLED) -> Package:
    root_path = find_root_path(archive)
    try:
        opf = archive.read_text(root_path)
    except UnreadableMember as exc:
        raise MalformedPackage(f"Invalid EPUB: cannot read OPF file {root_path}") from exc
    if opf is None:
        raise MalformedPackage(f"Invalid EPUB: cannot read OPF file {root_path}")

    soup = parse_xml(opf)
    root_dir = posix_dirname(root_path)
    directory_prefix = f"{root_dir}/" if root_dir else ""

    manifest = _manifest(soup)
    reading_order: List[ManifestEntry] = []
    legacy_toc_id: Optional[str] = None
    spine = soup.find("spine")
    if spine is not None:
        legacy_toc_id = str(spine.get("toc") or "") or None
        for itemref in spine.find_all("itemref"):
            idref = str(itemref.get("idref") or "")
            entry = manifest.get(idref)
            if entry is None:
                LOGGER.debug("Dropping spine reference to unknown id: %r", idref)
                continue
            reading_order.append(entry)

    package = Package(
        title=_book_title(soup, untitled),
        root_path=root_path,
        directory_prefix=directory_prefix,
        manifest=manifest,
        reading_order=reading_order,
        legacy_toc_id=legacy_toc_id,
    )
    LOGGER.debug(
        "Resolved %s: %d manifest items, %d spine items",
        root_path,
        len(manifest),
        len(reading_order),
    )
    return package
