from __future__ import annotations


class TypebookError(Exception):
    pass


class MalformedPackage(TypebookError):
    """The input cannot be treated as an EPUB package at all."""


class DegradedTocResolution(TypebookError):
    """A table-of-contents source could not be loaded or parsed."""


class SkippedContentFile(TypebookError):
    """A reading-order entry contributes no chapters."""


class UnreadableMember(TypebookError):
    """An archive member exists but its compressed data is damaged."""
