from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from . import chapters as chapters_util
from . import practice as practice_util
from .archive import EpubArchive
from .config import ParseOptions
from .errors import MalformedPackage
from .package import resolve_package
from .toc import resolve_toc


def _options_from_args(args: argparse.Namespace) -> ParseOptions:
    return ParseOptions(
        untitled=args.untitled,
        fallback_title=args.fallback_title,
    )


def _chapters(args: argparse.Namespace) -> int:
    book = chapters_util.parse_epub(Path(args.epub), _options_from_args(args))
    if not book.chapters:
        sys.stderr.write("No chapters found in EPUB.\n")
    digest = practice_util.book_hash(book.chapters)
    typed = practice_util.normalize_book(book)
    start_chapter = practice_util.find_starting_chapter(typed.chapters)
    if args.typing:
        book = typed
    payload = book.to_dict()
    payload["hash"] = digest
    payload["start_chapter"] = start_chapter
    data = json.dumps(payload, ensure_ascii=False, indent=2) + "\n"
    if args.output:
        Path(args.output).write_text(data, encoding="utf-8")
    else:
        sys.stdout.write(data)
    return 0


def _toc(args: argparse.Namespace) -> int:
    with EpubArchive(Path(args.epub)) as archive:
        package = resolve_package(archive, untitled=args.untitled)
        toc = resolve_toc(archive, package)
    sys.stdout.write(f"{package.title}\nsource: {toc.source.value}\n")
    for location, entries in toc.entries.items():
        for entry in entries:
            target = f"{location}#{entry.fragment}" if entry.fragment else location
            sys.stdout.write(f"{target}\t{entry.label}\n")
    return 0


def _text(args: argparse.Namespace) -> int:
    book = chapters_util.parse_epub(Path(args.epub), _options_from_args(args))
    selected = list(enumerate(book.chapters, start=1))
    if args.chapter is not None:
        selected = [item for item in selected if item[0] == args.chapter]
        if not selected:
            sys.stderr.write(
                f"Chapter {args.chapter} out of range (1-{len(book.chapters)}).\n"
            )
            return 2
    for idx, chapter in selected:
        sys.stdout.write(f"# {idx}. {chapter.title}\n\n{chapter.content}\n\n")
    return 0


def _add_parse_options(parser: argparse.ArgumentParser) -> None:
    defaults = ParseOptions()
    parser.add_argument(
        "--untitled",
        default=defaults.untitled,
        help=f"Book title when the package has none (default: {defaults.untitled})",
    )
    parser.add_argument(
        "--fallback-title",
        default=defaults.fallback_title,
        help="Title template for untitled chapters, '{number}' is replaced",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="typebook", description="EPUB chapter extraction for typing practice"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Log parsing details to stderr"
    )
    subparsers = parser.add_subparsers(dest="command")

    chapters = subparsers.add_parser("chapters", help="Write chapters as JSON")
    chapters.add_argument("epub", help="Path to the EPUB file")
    chapters.add_argument("--output", "-o", help="Write JSON here instead of stdout")
    chapters.add_argument(
        "--typing",
        action="store_true",
        help="Normalize chapter text to keyboard-typeable characters",
    )
    _add_parse_options(chapters)
    chapters.set_defaults(func=_chapters)

    toc = subparsers.add_parser("toc", help="Show the resolved table of contents")
    toc.add_argument("epub", help="Path to the EPUB file")
    toc.add_argument("--untitled", default=ParseOptions().untitled)
    toc.set_defaults(func=_toc)

    text = subparsers.add_parser("text", help="Print chapter text")
    text.add_argument("epub", help="Path to the EPUB file")
    text.add_argument("--chapter", type=int, help="1-based chapter number")
    _add_parse_options(text)
    text.set_defaults(func=_text)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        return int(args.func(args))
    except MalformedPackage as exc:
        sys.stderr.write(f"{exc}\n")
        return 2
    except OSError as exc:
        sys.stderr.write(f"Cannot read {args.epub}: {exc}\n")
        return 2

