"""
Chromakey and picture-in-picture.

Keying parameters are clamped into range instead of rejected, and a
missing or unparseable key color falls back to green. A PiP is compiled as
a keyed/scaled video layer placed at a named corner (or any Position), plus
an audio layer whose volume follows the chosen audio policy.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from reelgraph.models.layer_models import (
    AudioLayer,
    Border,
    ChromaKey,
    FitMode,
    Position,
    Shadow,
    Timeline,
    Transform,
    VideoLayer,
)
from reelgraph.utils.filter_graph import format_number
from reelgraph.utils.position_resolver import clamp, normalize_color

logger = logging.getLogger(__name__)

DEFAULT_KEY_COLOR = "0x00FF00"
DEFAULT_SIMILARITY = 0.4
DEFAULT_BLEND = 0.1
MIN_SIMILARITY = 0.01
DEFAULT_PIP_SCALE = 0.25
DEFAULT_PIP_MARGIN = 20
DUCK_VOLUME = 0.3


class AudioMix(str, Enum):
    """What happens to the PiP source's own audio."""

    MUTE = "mute"
    DUCK = "duck"  # Fixed attenuation under the main audio
    FULL = "full"


@dataclass(frozen=True)
class ChromaKeyFragment:
    color: str
    similarity: float
    blend: float
    yuv: bool = False

    def params(self) -> list[tuple[str, str]]:
        params = [
            ("color", self.color),
            ("similarity", format_number(round(self.similarity, 4))),
            ("blend", format_number(round(self.blend, 4))),
        ]
        if self.yuv:
            params.append(("yuv", "1"))
        return params


def chroma_key_fragment(chroma: ChromaKey | None) -> ChromaKeyFragment:
    chroma = chroma or ChromaKey()
    color = normalize_color(chroma.color, DEFAULT_KEY_COLOR).split("@")[0]
    return ChromaKeyFragment(
        color=color,
        similarity=clamp(
            chroma.similarity, MIN_SIMILARITY, 1.0, DEFAULT_SIMILARITY, "similarity"
        ),
        blend=clamp(chroma.blend, 0.0, 1.0, DEFAULT_BLEND, "blend"),
        yuv=chroma.yuv,
    )


def resolve_audio_volume(policy: AudioMix | str | float | None) -> float | None:
    """Volume for the keyed layer's audio; None means muted (no audio layer)."""
    if policy is None:
        return DUCK_VOLUME
    if isinstance(policy, (int, float)) and not isinstance(policy, bool):
        return clamp(policy, 0.0, 1.0, DUCK_VOLUME, "audio volume")
    if isinstance(policy, AudioMix):
        mode = policy
    else:
        try:
            mode = AudioMix(str(policy).strip().lower())
        except ValueError:
            return clamp(policy, 0.0, 1.0, DUCK_VOLUME, "audio volume")
    if mode == AudioMix.MUTE:
        return None
    if mode == AudioMix.FULL:
        return 1.0
    return DUCK_VOLUME


class PictureInPictureOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    position: str | Position = Field(
        default="bottom-right", description="Grid name or explicit Position"
    )
    margin: float = Field(default=DEFAULT_PIP_MARGIN, ge=0)
    scale: float | None = Field(default=DEFAULT_PIP_SCALE, gt=0)
    width: int | None = Field(default=None, gt=0)
    height: int | None = Field(default=None, gt=0)
    border_radius: float = Field(default=0, ge=0)
    border: Border | None = None
    shadow: bool | Shadow = False
    opacity: float | None = None
    start_time: float = Field(default=0.0, ge=0)
    duration: float | None = Field(default=None, gt=0)
    end_time: float | None = None
    chroma_key: ChromaKey | None = None
    audio_mix: AudioMix | float = AudioMix.DUCK


def _placement(options: PictureInPictureOptions) -> Position:
    if isinstance(options.position, Position):
        return options.position
    return Position.named(options.position, margin=options.margin)


def picture_in_picture_layers(
    source: str, options: PictureInPictureOptions | None = None
) -> list[VideoLayer | AudioLayer]:
    options = options or PictureInPictureOptions()
    if options.width or options.height:
        transform = Transform(width=options.width, height=options.height)
    else:
        transform = Transform(scale=options.scale)

    shadow = options.shadow
    if shadow is True:
        shadow = Shadow()
    elif shadow is False:
        shadow = None

    window = {
        "start_time": options.start_time,
        "duration": options.duration,
        "end_time": options.end_time,
    }
    layers: list[VideoLayer | AudioLayer] = [
        VideoLayer(
            name="pip",
            source=source,
            position=_placement(options),
            transform=transform,
            chroma_key=options.chroma_key,
            border_radius=options.border_radius,
            border=options.border,
            shadow=shadow,
            opacity=options.opacity,
            **window,
        )
    ]

    volume = resolve_audio_volume(options.audio_mix)
    if volume is not None:
        layers.append(AudioLayer(name="pip-audio", source=source, volume=volume, **window))
    return layers


def add_picture_in_picture(
    timeline: Timeline, source: str, options: PictureInPictureOptions | None = None
) -> Timeline:
    for layer in picture_in_picture_layers(source, options):
        timeline = timeline.add_layer(layer)
    return timeline


def add_green_screen(
    timeline: Timeline,
    source: str,
    color: str | None = None,
    similarity: float = DEFAULT_SIMILARITY,
    blend: float = DEFAULT_BLEND,
    audio_mix: AudioMix | float = AudioMix.FULL,
    **window: float,
) -> Timeline:
    """Key ``source`` full-frame over whatever is already on the timeline."""
    options = PictureInPictureOptions(
        position=Position(),
        scale=None,
        width=None,
        chroma_key=ChromaKey(color=color, similarity=similarity, blend=blend),
        audio_mix=audio_mix,
        **window,
    )
    width, height = timeline.options.frame_size()
    keyed = picture_in_picture_layers(source, options)
    keyed[0] = keyed[0].model_copy(
        update={
            "name": "green-screen",
            "transform": Transform(width=width, height=height, fit=FitMode.COVER),
        }
    )
    for layer in keyed:
        timeline = timeline.add_layer(layer)
    return timeline
