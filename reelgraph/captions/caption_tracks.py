"""
Captions as timeline text layers.

Each caption entry becomes one TextLayer over its own time window. Tracks
(e.g. one per language) are independent: every track adds its own layers
in track insertion order and no timing is shared between tracks.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Iterable, Sequence

from reelgraph.models.caption_models import (
    CaptionEntry,
    CaptionPosition,
    CaptionStyle,
    CaptionTrack,
)
from reelgraph.models.layer_models import (
    Position,
    TextLayer,
    TextStroke,
    TextStyle,
    Timeline,
)

logger = logging.getLogger(__name__)

ALIGNMENT_X = MappingProxyType({"left": "10%", "center": "50%", "right": "90%"})
VERTICAL_Y = MappingProxyType({"top": "10%", "middle": "50%", "bottom": "90%"})
DEFAULT_CAPTION_Y = "85%"

DEFAULT_CAPTION_STYLE = TextStyle(
    font_size=42, color="white", stroke=TextStroke(color="black", width=2)
)


def caption_position(
    position: CaptionPosition | None, vertical: str | None = None
) -> Position:
    """Screen position for a caption; ``vertical`` overrides the entry's own."""
    alignment = position.alignment if position else "center"
    vertical = vertical or (position.vertical if position else None)
    x = ALIGNMENT_X.get(alignment.lower(), ALIGNMENT_X["center"])
    y = VERTICAL_Y.get(vertical.lower(), DEFAULT_CAPTION_Y) if vertical else DEFAULT_CAPTION_Y
    return Position(x=x, y=y, anchor="center")


def _styled(base: TextStyle, inline: CaptionStyle | None) -> TextStyle:
    if inline is None:
        return base
    update = {}
    if inline.color:
        update["color"] = inline.color
    if inline.font_name:
        update["font_family"] = inline.font_name
    if inline.bold or inline.italic or inline.underline:
        logger.debug("Bold/italic/underline caption tags have no text-draw equivalent")
    return base.model_copy(update=update) if update else base


def caption_text_layer(
    entry: CaptionEntry,
    style: TextStyle | None = None,
    vertical: str | None = None,
    name: str = "caption",
) -> TextLayer | None:
    """TextLayer for one entry, or None when its timing cannot be placed."""
    if entry.start_time < 0 or entry.end_time <= entry.start_time:
        logger.warning(
            f"Caption {entry.index} has an invalid window "
            f"({entry.start_time}s -> {entry.end_time}s), skipped"
        )
        return None
    if not entry.text.strip():
        return None

    return TextLayer(
        name=name,
        text=entry.text,
        start_time=entry.start_time,
        end_time=entry.end_time,
        position=caption_position(entry.position, vertical),
        style=_styled(style or DEFAULT_CAPTION_STYLE, entry.style),
    )


def captions_to_timeline(
    timeline: Timeline,
    entries: Iterable[CaptionEntry],
    style: TextStyle | None = None,
    vertical: str | None = None,
    name: str = "caption",
) -> Timeline:
    for entry in sorted(entries, key=lambda item: item.start_time):
        layer = caption_text_layer(entry, style, vertical, name)
        if layer is not None:
            timeline = timeline.add_layer(layer)
    return timeline


def timeline_to_captions(timeline: Timeline) -> list[CaptionEntry]:
    """Bounded text layers as caption entries, sorted and numbered from 1."""
    texts = [
        layer
        for layer in timeline.layers
        if isinstance(layer, TextLayer) and layer.end is not None
    ]
    texts.sort(key=lambda layer: layer.start_time)
    return [
        CaptionEntry(
            index=number,
            start_time=layer.start_time,
            end_time=layer.end,
            text=layer.text,
        )
        for number, layer in enumerate(texts, start=1)
    ]


def add_caption_tracks(timeline: Timeline, tracks: Sequence[CaptionTrack]) -> Timeline:
    for track in tracks:
        logger.debug(f"Adding caption track {track.name} ({len(track.entries)} entries)")
        timeline = captions_to_timeline(
            timeline,
            track.entries,
            style=track.style,
            vertical=track.vertical,
            name=f"caption:{track.name}",
        )
    return timeline
