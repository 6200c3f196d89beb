"""
Declarative video compositing compiled to a single ffmpeg command.

Usage:
    from reelgraph import Position, Timeline, TimelineToFFmpeg

    timeline = (
        Timeline()
        .add_video("intro.mp4", duration=10)
        .add_text("Hello", start_time=2, duration=3, position=Position(x="50%", y="80%", anchor="center"))
    )

    command = TimelineToFFmpeg(timeline).build_command_string(output_path="out.mp4")
"""

from .errors import InvalidFilterError, ReelgraphError, StructuralError, UnknownLayerError
from .models.caption_models import CaptionEntry, CaptionStyle, CaptionTrack
from .models.layer_models import (
    AudioLayer,
    FilterLayer,
    ImageLayer,
    PanZoomOptions,
    Position,
    TextLayer,
    TextStyle,
    Timeline,
    Transform,
    VideoLayer,
)
from .models.render_models import OutputOptions, RenderPreset, RenderTarget
from .operators.batch_operator import CompileCache, compile_batch
from .utils.ffmpeg_builder import TimelineToFFmpeg, build_render_command, emit

__all__ = [
    "InvalidFilterError",
    "ReelgraphError",
    "StructuralError",
    "UnknownLayerError",
    "CaptionEntry",
    "CaptionStyle",
    "CaptionTrack",
    "AudioLayer",
    "FilterLayer",
    "ImageLayer",
    "PanZoomOptions",
    "Position",
    "TextLayer",
    "TextStyle",
    "Timeline",
    "Transform",
    "VideoLayer",
    "OutputOptions",
    "RenderPreset",
    "RenderTarget",
    "CompileCache",
    "compile_batch",
    "TimelineToFFmpeg",
    "build_render_command",
    "emit",
]
