from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ParseOptions:
    untitled: str = "Untitled"
    fallback_title: str = "Chapter {number}"
    max_title_length: int = 200
    max_line_title_length: int = 80

    def fallback(self, number: int) -> str:
        return self.fallback_title.format(number=number)


DEFAULT_OPTIONS = ParseOptions()
