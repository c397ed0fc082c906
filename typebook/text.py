from __future__ import annotations

import enum
import re
from typing import Dict, Optional

from bs4.element import CData, NavigableString, PreformattedString, Tag


class Treatment(enum.Enum):
    DROP = "drop"
    BLOCK = "block"
    INLINE = "inline"


TAG_TREATMENT: Dict[str, Treatment] = {
    "script": Treatment.DROP,
    "style": Treatment.DROP,
    "nav": Treatment.DROP,
    "header": Treatment.DROP,
    "footer": Treatment.DROP,
    "p": Treatment.BLOCK,
    "div": Treatment.BLOCK,
    "h1": Treatment.BLOCK,
    "h2": Treatment.BLOCK,
    "h3": Treatment.BLOCK,
    "h4": Treatment.BLOCK,
    "h5": Treatment.BLOCK,
    "h6": Treatment.BLOCK,
    "li": Treatment.BLOCK,
    "blockquote": Treatment.BLOCK,
    "br": Treatment.BLOCK,
}

PARAGRAPH_BREAK = "\n\n"


def treatment_for(tag: object) -> Treatment:
    name = str(getattr(tag, "name", "") or "").lower()
    return TAG_TREATMENT.get(name, Treatment.INLINE)


def is_text_node(node: object) -> bool:
    if not isinstance(node, NavigableString):
        return False
    # Comments, doctypes and processing instructions carry no readable text.
    return isinstance(node, CData) or not isinstance(node, PreformattedString)


def _subtree_text(element: Tag) -> str:
    text = ""
    for child in element.children:
        if is_text_node(child):
            text += str(child)
            continue
        if not isinstance(child, Tag):
            continue
        treatment = treatment_for(child)
        if treatment is Treatment.DROP:
            continue
        is_block = treatment is Treatment.BLOCK
        if is_block and text and not text.endswith("\n"):
            text += PARAGRAPH_BREAK
        text += _subtree_text(child)
        if is_block and not text.endswith("\n"):
            text += PARAGRAPH_BREAK
    return text


def normalize_whitespace(text: str) -> str:
    """Collapse spaces and blank lines, also dropping the space indentation leaves beside a newline."""
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = re.sub(r"[ \t]+", " ", text)
    text = re.sub(r" ?\n ?", "\n", text)
    text = re.sub(r"\n{3,}", PARAGRAPH_BREAK, text)
    return text.strip()


def extract_text(element: Optional[Tag]) -> str:
    """Return the readable text under *element* with blank lines between blocks."""
    if element is None:
        return ""
    return normalize_whitespace(_subtree_text(element))
