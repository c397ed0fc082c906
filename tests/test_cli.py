import argparse
import json

from typebook import cli


def test_cli_has_expected_commands() -> None:
    parser = cli.build_parser()
    subparsers = [
        action
        for action in parser._actions
        if isinstance(action, argparse._SubParsersAction)
    ]
    assert subparsers
    choices = set(subparsers[0].choices.keys())
    for name in ("chapters", "toc", "text"):
        assert name in choices


def test_chapters_parser_defaults() -> None:
    parser = cli.build_parser()
    args = parser.parse_args(["chapters", "book.epub"])
    assert args.typing is False
    assert args.untitled == "Untitled"
    assert args.fallback_title == "Chapter {number}"


def test_chapters_command_writes_json(epub_factory, tmp_path) -> None:
    path = epub_factory.book(
        [("ch1.xhtml", "<h1>Intro</h1><p>“Hello” world.</p>")], title="My Book"
    )
    out_path = tmp_path / "book.json"
    assert cli.main(["chapters", str(path), "--typing", "-o", str(out_path)]) == 0
    payload = json.loads(out_path.read_text(encoding="utf-8"))
    assert payload["title"] == "My Book"
    assert payload["chapters"] == [
        {"title": "Intro", "content": 'Intro¶"Hello" world.'}
    ]
    assert len(payload["hash"]) == 64
    assert payload["start_chapter"] == 0


def test_start_chapter_does_not_depend_on_typing_flag(epub_factory, capsys) -> None:
    # Long only while paragraph breaks are two characters each.
    opening = "<h1>Opening</h1>" + "<p>abcdefghijklm</p>" * 20
    story = "<h1>Story</h1><p>" + "word " * 80 + "</p>"
    path = epub_factory.book([("ch1.xhtml", opening), ("ch2.xhtml", story)])
    starts = []
    for extra in ([], ["--typing"]):
        assert cli.main(["chapters", str(path), *extra]) == 0
        starts.append(json.loads(capsys.readouterr().out)["start_chapter"])
    assert starts == [1, 1]


def test_toc_command_prints_entries(epub_factory, capsys) -> None:
    path = epub_factory.book(
        [("ch1.xhtml", "<p>x</p>")], ncx=[("Start", "ch1.xhtml#s")]
    )
    assert cli.main(["toc", str(path)]) == 0
    out = capsys.readouterr().out
    assert "source: ncx" in out
    assert "ch1.xhtml#s\tStart" in out


def test_text_command_rejects_out_of_range_chapter(epub_factory, capsys) -> None:
    path = epub_factory.book([("ch1.xhtml", "<h1>Only</h1><p>Body.</p>")])
    assert cli.main(["text", str(path), "--chapter", "1"]) == 0
    assert "# 1. Only" in capsys.readouterr().out
    assert cli.main(["text", str(path), "--chapter", "5"]) == 2


def test_malformed_package_exit_code(tmp_path, capsys) -> None:
    path = tmp_path / "broken.epub"
    path.write_bytes(b"not a zip")
    assert cli.main(["chapters", str(path)]) == 2
    assert "Invalid EPUB" in capsys.readouterr().err


def test_missing_command_prints_help() -> None:
    assert cli.main([]) == 1
