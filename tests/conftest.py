from __future__ import annotations

import zipfile
from pathlib import Path
from typing import Dict, Iterable, Optional, Sequence, Tuple

import pytest

XHTML_MEDIA_TYPE = "application/xhtml+xml"
NCX_MEDIA_TYPE = "application/x-dtbncx+xml"


class EpubFactory:
    """Builds small EPUB archives member by member."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self._count = 0

    @staticmethod
    def container(opf_path: str = "OEBPS/content.opf") -> str:
        return (
            '<?xml version="1.0" encoding="UTF-8"?>\n'
            '<container version="1.0" '
            'xmlns="urn:oasis:names:tc:opendocument:xmlns:container">\n'
            "  <rootfiles>\n"
            f'    <rootfile full-path="{opf_path}" '
            'media-type="application/oebps-package+xml"/>\n'
            "  </rootfiles>\n"
            "</container>\n"
        )

    @staticmethod
    def opf(
        title: Optional[str],
        items: Iterable[Tuple[str, str, Optional[str]]],
        spine: Iterable[str],
        toc_id: Optional[str] = None,
    ) -> str:
        title_xml = f"    <dc:title>{title}</dc:title>\n" if title is not None else ""
        item_xml = ""
        for item_id, href, media_type in items:
            media = f' media-type="{media_type}"' if media_type is not None else ""
            item_xml += f'    <item id="{item_id}" href="{href}"{media}/>\n'
        spine_attr = f' toc="{toc_id}"' if toc_id else ""
        spine_xml = "".join(f'    <itemref idref="{idref}"/>\n' for idref in spine)
        return (
            '<?xml version="1.0" encoding="UTF-8"?>\n'
            '<package xmlns="http://www.idpf.org/2007/opf" version="3.0" '
            'unique-identifier="uid">\n'
            '  <metadata xmlns:dc="http://purl.org/dc/elements/1.1/">\n'
            '    <dc:identifier id="uid">test-book</dc:identifier>\n'
            f"{title_xml}"
            "  </metadata>\n"
            "  <manifest>\n"
            f"{item_xml}"
            "  </manifest>\n"
            f"  <spine{spine_attr}>\n"
            f"{spine_xml}"
            "  </spine>\n"
            "</package>\n"
        )

    @staticmethod
    def xhtml(body: str, head_title: str = "") -> str:
        return (
            '<?xml version="1.0" encoding="UTF-8"?>\n'
            '<html xmlns="http://www.w3.org/1999/xhtml" '
            'xmlns:epub="http://www.idpf.org/2007/ops">\n'
            f"<head><title>{head_title}</title></head>\n"
            f"<body>\n{body}\n</body>\n"
            "</html>\n"
        )

    @staticmethod
    def ncx(points: Sequence[Tuple[str, str]]) -> str:
        nav_points = ""
        for idx, (label, src) in enumerate(points, start=1):
            nav_points += (
                f'    <navPoint id="np{idx}" playOrder="{idx}">\n'
                f"      <navLabel><text>{label}</text></navLabel>\n"
                f'      <content src="{src}"/>\n'
                "    </navPoint>\n"
            )
        return (
            '<?xml version="1.0" encoding="UTF-8"?>\n'
            '<ncx xmlns="http://www.daisy.org/z3986/2005/ncx/" version="2005-1">\n'
            "  <navMap>\n"
            f"{nav_points}"
            "  </navMap>\n"
            "</ncx>\n"
        )

    @classmethod
    def nav(cls, links: Sequence[Tuple[str, str]]) -> str:
        items = "".join(f'<li><a href="{href}">{label}</a></li>\n' for label, href in links)
        return cls.xhtml(f'<nav epub:type="toc" id="toc">\n<ol>\n{items}</ol>\n</nav>')

    def write(self, files: Dict[str, str], name: Optional[str] = None) -> Path:
        self._count += 1
        path = self.root / (name or f"book-{self._count}.epub")
        with zipfile.ZipFile(path, "w") as zf:
            zf.writestr("mimetype", "application/epub+zip")
            for member, content in files.items():
                zf.writestr(member, content)
        return path

    @staticmethod
    def corrupt(path: Path, member: str) -> None:
        """Flip the first data byte of a stored *member* so its CRC no longer matches."""
        with zipfile.ZipFile(path) as zf:
            offset = zf.getinfo(member).header_offset
        data = bytearray(path.read_bytes())
        name_length = int.from_bytes(data[offset + 26 : offset + 28], "little")
        extra_length = int.from_bytes(data[offset + 28 : offset + 30], "little")
        start = offset + 30 + name_length + extra_length
        data[start] ^= 0xFF
        path.write_bytes(bytes(data))

    def book(
        self,
        chapters: Sequence[Tuple[str, str]],
        title: Optional[str] = "Test Book",
        ncx: Optional[Sequence[Tuple[str, str]]] = None,
        nav: Optional[Sequence[Tuple[str, str]]] = None,
    ) -> Path:
        """Write an EPUB whose spine is *chapters*, a list of (href, body) pairs."""
        items = [
            (f"item{idx}", href, XHTML_MEDIA_TYPE)
            for idx, (href, _body) in enumerate(chapters, start=1)
        ]
        spine = [item_id for item_id, _href, _media in items]
        files = {
            "META-INF/container.xml": self.container(),
        }
        for href, body in chapters:
            files[f"OEBPS/{href}"] = self.xhtml(body)
        toc_id = None
        if ncx is not None:
            toc_id = "ncx"
            items.append(("ncx", "toc.ncx", NCX_MEDIA_TYPE))
            files["OEBPS/toc.ncx"] = self.ncx(ncx)
        if nav is not None:
            items.insert(0, ("nav", "nav.xhtml", XHTML_MEDIA_TYPE))
            files["OEBPS/nav.xhtml"] = self.nav(nav)
        files["OEBPS/content.opf"] = self.opf(title, items, spine, toc_id=toc_id)
        return self.write(files)


@pytest.fixture
def epub_factory(tmp_path: Path) -> EpubFactory:
    return EpubFactory(tmp_path)
