"""
Word timing and word-by-word highlighting.

Word timings either come from the caller (e.g. a transcript with per-word
start/end) or are estimated by partitioning a caption's time envelope.
Highlighting turns timed words into text layers: a base layer per word in
the base style, plus a highlight layer in the highlight style while the
word is active. Word placement inside a line is estimated from the font
size; there is no font measurement at compile time.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterable, Sequence

from reelgraph.models.caption_models import WordTiming
from reelgraph.models.layer_models import (
    Position,
    TextBackground,
    TextLayer,
    TextStroke,
    TextStyle,
    Timeline,
)
from reelgraph.utils.position_resolver import resolve_position

logger = logging.getLogger(__name__)

DEFAULT_WORDS_PER_MINUTE = 150
MIN_READING_DURATION = 1.0
MAX_READING_DURATION = 10.0
READING_PADDING = 0.5

# Average glyph advance as a fraction of the font size
CHAR_WIDTH_RATIO = 0.55

_CLEAN_WORD_RE = re.compile(r"[^\w!?.,']")


def calculate_reading_duration(
    text: str, words_per_minute: float = DEFAULT_WORDS_PER_MINUTE
) -> float:
    """Seconds a viewer needs to read ``text``, clamped to [1, 10]."""
    words = len(text.split())
    duration = words / words_per_minute * 60 + READING_PADDING
    return min(max(duration, MIN_READING_DURATION), MAX_READING_DURATION)


def _split_words(text: str) -> list[str]:
    words = []
    for raw in text.split():
        word = _CLEAN_WORD_RE.sub("", raw)
        if word:
            words.append(word)
    return words


def _explicit_timings(
    explicit: Iterable[WordTiming | dict[str, Any]], start: float, end: float
) -> list[WordTiming]:
    timings: list[WordTiming] = []
    for item in explicit:
        timing = item if isinstance(item, WordTiming) else WordTiming.model_validate(item)
        clipped_start = max(timing.start_time, start)
        clipped_end = min(timing.end_time, end)
        if clipped_end <= clipped_start:
            logger.debug(f"Word {timing.word!r} falls outside the caption window, dropped")
            continue
        timings.append(
            WordTiming(word=timing.word, start_time=clipped_start, end_time=clipped_end)
        )
    return timings


def generate_word_timings(
    text: str,
    start_time: float,
    duration: float,
    words_per_second: float | None = None,
    explicit: Sequence[WordTiming | dict[str, Any]] | None = None,
) -> list[WordTiming]:
    """
    Time each word of ``text`` inside [start_time, start_time + duration].

    - ``explicit`` timings are used as given, clipped to the window.
    - With ``words_per_second`` each word gets 1/wps seconds; words that
      would start past the window are dropped.
    - Otherwise the window is split evenly across the words.
    """
    end_time = start_time + duration
    if explicit is not None:
        return _explicit_timings(explicit, start_time, end_time)

    words = _split_words(text)
    if not words or duration <= 0:
        return []

    if words_per_second is not None and words_per_second > 0:
        word_duration = 1 / words_per_second
    else:
        word_duration = duration / len(words)

    timings: list[WordTiming] = []
    for position, word in enumerate(words):
        word_start = start_time + position * word_duration
        word_end = min(word_start + word_duration, end_time)
        if word_end <= word_start:
            logger.debug(f"{len(words) - position} words do not fit in {duration}s, dropped")
            break
        timings.append(
            WordTiming(
                word=word,
                start_time=round(word_start, 6),
                end_time=round(word_end, 6),
            )
        )
    return timings


def staggered_timings(
    timings: Sequence[WordTiming], overlap: float = 0.0
) -> list[WordTiming]:
    """Extend each word's end by ``overlap`` seconds, capped at the next word's end."""
    staggered: list[WordTiming] = []
    for position, timing in enumerate(timings):
        end = timing.end_time + overlap
        if position + 1 < len(timings):
            end = min(end, timings[position + 1].end_time)
        staggered.append(timing.model_copy(update={"end_time": end}))
    return staggered


# =============================================================================
# HIGHLIGHTING
# =============================================================================


class HighlightMode(str, Enum):
    POP = "pop"  # Highlight only while the word is spoken
    KARAOKE = "karaoke"  # Highlight stays on until the line ends
    TYPEWRITER = "typewriter"  # Words appear as spoken and stay until the line ends


@dataclass(frozen=True)
class HighlightPreset:
    base: TextStyle
    highlight: TextStyle
    mode: HighlightMode = HighlightMode.POP


DEFAULT_HIGHLIGHT = HighlightPreset(
    base=TextStyle(font_size=32, color="#cccccc", stroke=TextStroke(color="#000000", width=1)),
    highlight=TextStyle(font_size=32, color="#ff0066", stroke=TextStroke(color="#000000", width=2)),
)

HIGHLIGHT_PRESETS = MappingProxyType(
    {
        "tiktok": HighlightPreset(
            base=TextStyle(font_size=48, color="#ffffff", stroke=TextStroke(color="#000000", width=3)),
            highlight=TextStyle(
                font_size=62.4, color="#ff0066", stroke=TextStroke(color="#000000", width=4)
            ),
        ),
        "instagram": HighlightPreset(
            base=TextStyle(font_size=36, color="#ffffff", stroke=TextStroke(color="#000000", width=2)),
            highlight=TextStyle(
                font_size=43.2,
                color="#ff4400",
                stroke=TextStroke(color="#000000", width=2),
                background=TextBackground(color="rgba(255,68,0,0.3)", padding=8),
            ),
        ),
        "youtube": HighlightPreset(
            base=TextStyle(
                font_size=32,
                color="#ffffff",
                background=TextBackground(color="rgba(0,0,0,0.8)", padding=6),
            ),
            highlight=TextStyle(
                font_size=32,
                color="#ff0000",
                background=TextBackground(color="rgba(255,0,0,0.9)", padding=8),
            ),
            mode=HighlightMode.KARAOKE,
        ),
        "karaoke": HighlightPreset(
            base=TextStyle(font_size=40, color="#cccccc", stroke=TextStroke(color="#000000", width=2)),
            highlight=TextStyle(
                font_size=40, color="#ffff00", stroke=TextStroke(color="#ff0000", width=3)
            ),
            mode=HighlightMode.KARAOKE,
        ),
        "typewriter": HighlightPreset(
            base=TextStyle(
                font_size=24,
                color="#333333",
                background=TextBackground(color="rgba(255,255,255,0.9)", padding=10),
            ),
            highlight=TextStyle(font_size=26.4, color="#0066cc"),
            mode=HighlightMode.TYPEWRITER,
        ),
    }
)


def _group_lines(words: Sequence[WordTiming], max_words_per_line: int) -> list[list[WordTiming]]:
    size = max(1, max_words_per_line)
    return [list(words[i:i + size]) for i in range(0, len(words), size)]


def _word_centers(line: Sequence[WordTiming], center_x: float, font_size: float) -> list[float]:
    char_width = font_size * CHAR_WIDTH_RATIO
    widths = [len(timing.word) * char_width for timing in line]
    line_width = sum(widths) + char_width * (len(line) - 1)
    cursor = center_x - line_width / 2
    centers = []
    for width in widths:
        centers.append(cursor + width / 2)
        cursor += width + char_width
    return centers


def word_highlight_layers(
    words: Sequence[WordTiming],
    frame_size: tuple[int, int],
    position: Position | None = None,
    preset: HighlightPreset = DEFAULT_HIGHLIGHT,
    max_words_per_line: int = 5,
) -> list[TextLayer]:
    """Base and highlight text layers for timed words, one line at a time."""
    position = position or Position.centered()
    resolved = resolve_position(position, frame_size, kind="text", default_anchor="center")
    layers: list[TextLayer] = []
    ordered = sorted(words, key=lambda timing: timing.start_time)

    for line_number, line in enumerate(_group_lines(ordered, max_words_per_line)):
        line_start = line[0].start_time
        line_end = max(timing.end_time for timing in line)
        centers = _word_centers(line, resolved.x, preset.base.font_size)

        for timing, center in zip(line, centers):
            placed = Position(x=round(center, 1), y=round(resolved.y, 1), anchor="center")
            base_start = line_start
            if preset.mode == HighlightMode.TYPEWRITER:
                base_start = timing.start_time
            highlight_end = timing.end_time
            if preset.mode == HighlightMode.KARAOKE:
                highlight_end = line_end

            layers.append(
                TextLayer(
                    name=f"word-base-{line_number}",
                    text=timing.word,
                    position=placed,
                    style=preset.base,
                    start_time=base_start,
                    end_time=line_end,
                )
            )
            layers.append(
                TextLayer(
                    name=f"word-highlight-{line_number}",
                    text=timing.word,
                    position=placed,
                    style=preset.highlight,
                    start_time=timing.start_time,
                    end_time=highlight_end,
                )
            )
    return layers


def add_word_highlighting(
    timeline: Timeline,
    text: str | None = None,
    words: Sequence[WordTiming | dict[str, Any]] | None = None,
    start_time: float = 0.0,
    duration: float = 5.0,
    words_per_second: float | None = None,
    preset: str | HighlightPreset | None = None,
    position: Position | None = None,
    max_words_per_line: int = 5,
) -> Timeline:
    if isinstance(preset, str):
        preset = HIGHLIGHT_PRESETS.get(preset.lower(), DEFAULT_HIGHLIGHT)
    preset = preset or DEFAULT_HIGHLIGHT

    if words is not None:
        timings = generate_word_timings("", start_time, duration, explicit=words)
    elif text:
        timings = generate_word_timings(text, start_time, duration, words_per_second)
    else:
        logger.warning("add_word_highlighting called without text or words, timeline unchanged")
        return timeline

    layers = word_highlight_layers(
        timings,
        timeline.options.frame_size(),
        position=position,
        preset=preset,
        max_words_per_line=max_words_per_line,
    )
    for layer in layers:
        timeline = timeline.add_layer(layer)
    return timeline
