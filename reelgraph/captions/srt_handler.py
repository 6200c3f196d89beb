"""
SRT subtitle parsing, generation and validation.

Supports:
- Parsing with CRLF/LF/CR line endings and an optional UTF-8 BOM
- Inline style tags extracted into a side-channel CaptionStyle
- Generation with re-sorting, renumbering, word wrap and configurable line endings
- Opt-in validation that reports problems instead of raising
- Splitting into fixed-length chunks and merging several files

Malformed blocks are skipped (and logged) unless strict mode is on, in
which case the first one raises StructuralError.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable, Sequence

from reelgraph.captions.style_tags import apply_styles, extract_styles
from reelgraph.errors import StructuralError
from reelgraph.models.caption_models import (
    CaptionEntry,
    SRTGenerateOptions,
    SRTParseOptions,
    ValidationReport,
    ValidationStats,
)

logger = logging.getLogger(__name__)

BOM = "\ufeff"

_BLOCK_SEPARATOR = re.compile(r"\n\s*\n")
_TIMING_RE = re.compile(
    r"^\s*(\d{1,2}):(\d{2}):(\d{2})[,.](\d{1,3})\s*-->\s*"
    r"(\d{1,2}):(\d{2}):(\d{2})[,.](\d{1,3})"
)
_SENTENCE_RE = re.compile(r"(?<=[.!?])\s+")

DEFAULT_GAP_WARNING = 5.0
DEFAULT_MIN_DURATION = 0.1
DEFAULT_MAX_DURATION = 10.0
DEFAULT_MAX_TEXT_LENGTH = 200


# =============================================================================
# TIMESTAMPS
# =============================================================================


def format_timestamp(seconds: float, use_milliseconds: bool = True) -> str:
    """Format seconds as HH:MM:SS,mmm (milliseconds zeroed when disabled)."""
    total_ms = max(0, round(seconds * 1000))
    if not use_milliseconds:
        total_ms -= total_ms % 1000
    hours, remainder = divmod(total_ms, 3_600_000)
    minutes, remainder = divmod(remainder, 60_000)
    secs, millis = divmod(remainder, 1000)
    return f"{hours:02d}:{minutes:02d}:{secs:02d},{millis:03d}"


def _to_seconds(hours: str, minutes: str, seconds: str, millis: str) -> float:
    total_ms = (
        int(hours) * 3_600_000
        + int(minutes) * 60_000
        + int(seconds) * 1000
        + int(millis.ljust(3, "0"))
    )
    return total_ms / 1000


def parse_timestamp(value: str) -> float:
    match = re.match(r"^\s*(\d{1,2}):(\d{2}):(\d{2})[,.](\d{1,3})\s*$", value)
    if not match:
        raise ValueError(f"Invalid SRT timestamp: {value!r}")
    return _to_seconds(*match.groups())


# =============================================================================
# PARSE / GENERATE
# =============================================================================


def _reindexed(entries: Iterable[CaptionEntry]) -> list[CaptionEntry]:
    ordered = sorted(entries, key=lambda entry: entry.start_time)
    return [
        entry.model_copy(update={"index": position})
        for position, entry in enumerate(ordered, start=1)
    ]


def _parse_block(block: str, options: SRTParseOptions) -> CaptionEntry | None:
    """Parse one block; raises ValueError when it is malformed."""
    lines = [line.rstrip() for line in block.split("\n")]
    while lines and not lines[0].strip():
        lines.pop(0)
    if len(lines) < 2:
        raise ValueError("expected an index line and a timing line")

    try:
        index = int(lines[0].strip())
    except ValueError:
        raise ValueError(f"invalid index line {lines[0]!r}") from None

    timing = _TIMING_RE.match(lines[1])
    if not timing:
        raise ValueError(f"invalid timing line {lines[1]!r}")
    groups = timing.groups()
    start = _to_seconds(*groups[:4])
    end = _to_seconds(*groups[4:])

    raw_text = "\n".join(lines[2:]).strip()
    style = None
    text = raw_text
    if options.parse_styles:
        text, style = extract_styles(raw_text)
        text = text.strip()

    if not text and not options.preserve_empty:
        logger.debug(f"Dropping empty subtitle {index}")
        return None

    return CaptionEntry(index=index, start_time=start, end_time=end, text=text, style=style)


def parse_srt(content: str, options: SRTParseOptions | None = None) -> list[CaptionEntry]:
    """
    Parse SRT text into entries sorted by start time and indexed from 1.

    The index numbers in the file are not authoritative.
    """
    options = options or SRTParseOptions()
    normalized = content.lstrip(BOM).replace("\r\n", "\n").replace("\r", "\n").strip()
    if not normalized:
        return []

    entries: list[CaptionEntry] = []
    for block_number, block in enumerate(_BLOCK_SEPARATOR.split(normalized), start=1):
        if not block.strip():
            continue
        try:
            entry = _parse_block(block, options)
        except ValueError as exc:
            if options.strict:
                raise StructuralError(str(exc), block_number=block_number) from exc
            logger.warning(f"Skipping malformed subtitle block {block_number}: {exc}")
            continue
        if entry is not None:
            entries.append(entry)

    return _reindexed(entries)


def wrap_text(text: str, max_line_length: int | None) -> str:
    """Word-wrap each line of ``text``; words longer than the limit stay whole."""
    if not max_line_length:
        return text

    wrapped: list[str] = []
    for line in text.split("\n"):
        current = ""
        for word in line.split():
            if current and len(current) + 1 + len(word) > max_line_length:
                wrapped.append(current)
                current = word
            else:
                current = f"{current} {word}" if current else word
        wrapped.append(current)
    return "\n".join(wrapped)


def generate_srt(
    entries: Sequence[CaptionEntry], options: SRTGenerateOptions | None = None
) -> str:
    options = options or SRTGenerateOptions()
    newline = options.line_ending
    blocks: list[str] = []

    for entry in _reindexed(entries):
        text = wrap_text(entry.text, options.max_line_length)
        if options.include_styles:
            text = apply_styles(text, entry.style)
        timing = (
            f"{format_timestamp(entry.start_time, options.use_milliseconds)} --> "
            f"{format_timestamp(entry.end_time, options.use_milliseconds)}"
        )
        blocks.append(newline.join([str(entry.index), timing, *text.split("\n")]))

    output = (newline * 2).join(blocks)
    if blocks:
        output += newline
    if options.add_bom:
        output = BOM + output
    return output


# =============================================================================
# VALIDATION
# =============================================================================


def validate_captions(
    entries: Sequence[CaptionEntry],
    gap_threshold: float = DEFAULT_GAP_WARNING,
    min_duration: float = DEFAULT_MIN_DURATION,
    max_duration: float = DEFAULT_MAX_DURATION,
    max_text_length: int = DEFAULT_MAX_TEXT_LENGTH,
) -> ValidationReport:
    """
    Check timing and text quality.

    Errors: negative start, end not after start.
    Warnings: overlap with the immediately preceding entry, gaps above
    ``gap_threshold``, durations outside [min_duration, max_duration],
    empty text and text longer than ``max_text_length``.
    """
    ordered = sorted(entries, key=lambda entry: entry.start_time)
    errors: list[str] = []
    warnings: list[str] = []
    overlap_count = 0
    gap_count = 0

    for number, entry in enumerate(ordered, start=1):
        label = f"Entry {number}"
        if entry.start_time < 0:
            errors.append(f"{label}: negative start time ({entry.start_time:.3f}s)")
        if entry.end_time <= entry.start_time:
            errors.append(
                f"{label}: end not after start "
                f"({entry.end_time:.3f}s <= {entry.start_time:.3f}s)"
            )
        else:
            if entry.duration < min_duration:
                warnings.append(f"{label}: very short duration ({entry.duration:.3f}s)")
            elif entry.duration > max_duration:
                warnings.append(f"{label}: very long duration ({entry.duration:.3f}s)")

        if not entry.text.strip():
            warnings.append(f"{label}: empty text")
        elif len(entry.text) > max_text_length:
            warnings.append(
                f"{label}: text longer than {max_text_length} characters ({len(entry.text)})"
            )

        if number > 1:
            previous = ordered[number - 2]
            if entry.start_time < previous.end_time:
                overlap_count += 1
                warnings.append(f"{label}: overlaps with entry {number - 1}")
            elif entry.start_time - previous.end_time > gap_threshold:
                gap_count += 1
                warnings.append(
                    f"{label}: gap of {entry.start_time - previous.end_time:.3f}s "
                    f"after entry {number - 1}"
                )

    durations = [entry.duration for entry in ordered]
    stats = ValidationStats(
        entry_count=len(ordered),
        total_duration=sum(durations),
        average_duration=sum(durations) / len(durations) if durations else 0.0,
        overlap_count=overlap_count,
        gap_count=gap_count,
    )
    return ValidationReport(valid=not errors, errors=errors, warnings=warnings, stats=stats)


# =============================================================================
# SPLIT / MERGE
# =============================================================================


def _rebased(entries: list[CaptionEntry], offset: float) -> list[CaptionEntry]:
    return [
        entry.model_copy(
            update={
                "index": position,
                "start_time": max(0.0, entry.start_time - offset),
                "end_time": entry.end_time - offset,
            }
        )
        for position, entry in enumerate(entries, start=1)
    ]


def split_captions(
    entries: Sequence[CaptionEntry], max_seconds: float
) -> list[list[CaptionEntry]]:
    """
    Split into chunks covering at most ``max_seconds`` each.

    Entries accumulate until the next one would push the chunk's covered
    span (first start to last end) past ``max_seconds``. Each chunk is
    re-based to start at 0 and renumbered from 1. A single entry longer
    than ``max_seconds`` still gets its own chunk.
    """
    if max_seconds <= 0:
        raise ValueError("max_seconds must be positive")

    chunks: list[list[CaptionEntry]] = []
    current: list[CaptionEntry] = []
    chunk_start = 0.0

    for entry in sorted(entries, key=lambda item: item.start_time):
        if current and entry.end_time - chunk_start > max_seconds:
            chunks.append(_rebased(current, chunk_start))
            current = []
        if not current:
            chunk_start = entry.start_time
        current.append(entry)

    if current:
        chunks.append(_rebased(current, chunk_start))
    return chunks


def merge_captions(
    entry_lists: Sequence[Sequence[CaptionEntry]], gap_seconds: float = 0.0
) -> list[CaptionEntry]:
    """Concatenate lists; each list starts ``gap_seconds`` after the previous one ends."""
    merged: list[CaptionEntry] = []
    offset = 0.0

    for entries in entry_lists:
        ordered = sorted(entries, key=lambda entry: entry.start_time)
        if not ordered:
            continue
        shifted = [
            entry.model_copy(
                update={
                    "start_time": entry.start_time + offset,
                    "end_time": entry.end_time + offset,
                }
            )
            for entry in ordered
        ]
        merged.extend(shifted)
        offset = max(entry.end_time for entry in shifted) + gap_seconds

    return _reindexed(merged)


# =============================================================================
# FILES & TEXT
# =============================================================================


def read_srt_file(path: str | Path, options: SRTParseOptions | None = None) -> list[CaptionEntry]:
    content = Path(path).read_text(encoding="utf-8-sig")
    return parse_srt(content, options)


def write_srt_file(
    path: str | Path,
    entries: Sequence[CaptionEntry],
    options: SRTGenerateOptions | None = None,
) -> Path:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    # newline="" keeps the configured line ending byte-for-byte
    with target.open("w", encoding="utf-8", newline="") as handle:
        handle.write(generate_srt(entries, options))
    return target


def merge_srt_files(
    paths: Sequence[str | Path],
    gap_seconds: float = 0.0,
    options: SRTParseOptions | None = None,
) -> list[CaptionEntry]:
    return merge_captions([read_srt_file(path, options) for path in paths], gap_seconds)


def captions_from_text(
    text: str,
    words_per_minute: float = 150,
    min_duration: float = 1.0,
    max_duration: float = 5.0,
    start_time: float = 0.0,
    gap: float = 0.1,
) -> list[CaptionEntry]:
    """One caption per sentence, timed by reading speed."""
    entries: list[CaptionEntry] = []
    current = start_time

    for sentence in _SENTENCE_RE.split(text.strip()):
        sentence = sentence.strip()
        if not sentence:
            continue
        words = len(sentence.split())
        duration = min(max(words / words_per_minute * 60, min_duration), max_duration)
        entries.append(
            CaptionEntry(
                index=len(entries) + 1,
                start_time=round(current, 3),
                end_time=round(current + duration, 3),
                text=sentence,
            )
        )
        current += duration + gap

    return entries
