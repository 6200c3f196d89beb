"""
Subtitle parsing, generation and timing.

Usage:
    from reelgraph.captions import parse_srt, generate_srt, validate_captions

    entries = parse_srt(open("talk.srt", encoding="utf-8-sig").read())
    report = validate_captions(entries)
    for warning in report.warnings:
        print(warning)
"""

from .caption_tracks import add_caption_tracks, captions_to_timeline, timeline_to_captions
from .srt_handler import (
    captions_from_text,
    format_timestamp,
    generate_srt,
    merge_captions,
    merge_srt_files,
    parse_srt,
    parse_timestamp,
    read_srt_file,
    split_captions,
    validate_captions,
    write_srt_file,
)
from .word_timing import (
    HIGHLIGHT_PRESETS,
    add_word_highlighting,
    calculate_reading_duration,
    generate_word_timings,
)

__all__ = [
    "add_caption_tracks",
    "captions_to_timeline",
    "timeline_to_captions",
    "captions_from_text",
    "format_timestamp",
    "generate_srt",
    "merge_captions",
    "merge_srt_files",
    "parse_srt",
    "parse_timestamp",
    "read_srt_file",
    "split_captions",
    "validate_captions",
    "write_srt_file",
    "HIGHLIGHT_PRESETS",
    "add_word_highlighting",
    "calculate_reading_duration",
    "generate_word_timings",
]
