"""
Inline subtitle style tags.

Only the fixed tag set used in SRT files is recognized: <b>, <i>, <u> and
<font color=".." face="..">. Tags may nest in any order. A tag contributes
to the entry's style only when it is closed; unclosed and stray closing
tags are stripped from the text without affecting the style. Anything else
that looks like markup is left in the text untouched.
"""

from __future__ import annotations

import re

from reelgraph.models.caption_models import CaptionStyle

_TAG_RE = re.compile(r"<\s*(/?)\s*(b|i|u|font)\b([^>]*)>", re.IGNORECASE)
_ATTR_RE = re.compile(r"""(color|face)\s*=\s*(?:"([^"]*)"|'([^']*)'|([^\s>]+))""", re.IGNORECASE)


def _attributes(raw: str) -> dict[str, str]:
    attrs: dict[str, str] = {}
    for match in _ATTR_RE.finditer(raw):
        value = next(group for group in match.groups()[1:] if group is not None)
        attrs[match.group(1).lower()] = value
    return attrs


def extract_styles(text: str) -> tuple[str, CaptionStyle | None]:
    """Strip style tags from ``text`` and return (clean text, style or None)."""
    pieces: list[str] = []
    open_tags: list[tuple[str, dict[str, str]]] = []
    closed: dict[str, dict[str, str]] = {}
    cursor = 0

    for match in _TAG_RE.finditer(text):
        pieces.append(text[cursor:match.start()])
        cursor = match.end()
        closing, name = match.group(1), match.group(2).lower()

        if not closing:
            attrs = _attributes(match.group(3)) if name == "font" else {}
            open_tags.append((name, attrs))
            continue

        for depth in range(len(open_tags) - 1, -1, -1):
            if open_tags[depth][0] == name:
                _, attrs = open_tags.pop(depth)
                closed.setdefault(name, {}).update(attrs)
                break

    pieces.append(text[cursor:])
    clean = "".join(pieces)

    if not closed:
        return clean, None

    font = closed.get("font", {})
    style = CaptionStyle(
        bold="b" in closed,
        italic="i" in closed,
        underline="u" in closed,
        color=font.get("color"),
        font_name=font.get("face"),
    )
    if style.is_empty:
        return clean, None
    return clean, style


def apply_styles(text: str, style: CaptionStyle | None) -> str:
    """Wrap ``text`` in tags for ``style``: b, then i, then u, then font."""
    if style is None:
        return text
    if style.bold:
        text = f"<b>{text}</b>"
    if style.italic:
        text = f"<i>{text}</i>"
    if style.underline:
        text = f"<u>{text}</u>"
    attrs = []
    if style.color:
        attrs.append(f'color="{style.color}"')
    if style.font_name:
        attrs.append(f'face="{style.font_name}"')
    if attrs:
        text = f"<font {' '.join(attrs)}>{text}</font>"
    return text
