from __future__ import annotations

import logging
import zipfile
import zlib
from pathlib import Path
from typing import IO, List, Optional, Union
from urllib.parse import unquote

from bs4 import BeautifulSoup

from .errors import MalformedPackage, UnreadableMember

LOGGER = logging.getLogger(__name__)

Source = Union[str, Path, IO[bytes]]


class EpubArchive:
    """Read-only access to the members of a zipped EPUB container."""

    def __init__(self, source: Source) -> None:
        try:
            self._zip = zipfile.ZipFile(source)
        except zipfile.BadZipFile as exc:
            raise MalformedPackage(f"Invalid EPUB: not a zip archive ({exc})") from exc
        self._names = set(self._zip.namelist())

    def __enter__(self) -> "EpubArchive":
        return self

    def __exit__(self, *_exc: object) -> None:
        self.close()

    def close(self) -> None:
        self._zip.close()

    def names(self) -> List[str]:
        return self._zip.namelist()

    def _member_name(self, name: str) -> Optional[str]:
        name = (name or "").lstrip("/")
        if name in self._names:
            return name
        decoded = unquote(name)
        if decoded in self._names:
            return decoded
        return None

    def read_bytes(self, name: str) -> Optional[bytes]:
        member = self._member_name(name)
        if member is None:
            LOGGER.debug("Archive member not found: %s", name)
            return None
        try:
            return self._zip.read(member)
        except (zipfile.BadZipFile, zlib.error, EOFError) as exc:
            raise UnreadableMember(f"Cannot read {member}: {exc}") from exc

    def read_text(self, name: str) -> Optional[str]:
        data = self.read_bytes(name)
        if data is None:
            return None
        return data.decode("utf-8-sig", errors="replace")


def _wants_xml_parser(head: str) -> bool:
    return head.startswith("<?xml") or "xmlns=" in head


def parse_markup(data: bytes | str) -> BeautifulSoup:
    if isinstance(data, bytes):
        head = data.lstrip()[:512].decode("ascii", errors="ignore").lower()
    else:
        head = str(data).lstrip()[:512].lower()
    parser = "lxml-xml" if _wants_xml_parser(head) else "lxml"
    return BeautifulSoup(data, parser)


def parse_xml(data: bytes | str) -> BeautifulSoup:
    return BeautifulSoup(data, "lxml-xml")
