"""
Pydantic models for the layer/timeline composition model.

A Timeline is an ordered, immutable sequence of typed layers plus global
output options. Layer order is z-order: later layers are composited on top
of earlier ones. Every ``add_*``/``set_*`` operation returns a new Timeline
and leaves the receiver untouched.

Layer variants (discriminated on ``type``):
- VideoLayer / ImageLayer: visual sources with position, transform, effects
- AudioLayer: audio sources with volume, fades, pitch and tempo
- TextLayer: text drawn with a resolved position and style
- FilterLayer: a named filter applied to the running composite
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from reelgraph.errors import StructuralError


# =============================================================================
# ENUMS
# =============================================================================


class Easing(str, Enum):
    """Easing curves for pan/zoom motion."""

    LINEAR = "linear"
    EASE_IN = "ease-in"
    EASE_OUT = "ease-out"
    EASE_IN_OUT = "ease-in-out"
    SINUSOIDAL = "sinusoidal"


class PanDirection(str, Enum):
    """Direction of the Ken Burns camera move."""

    LEFT = "left"
    RIGHT = "right"
    UP = "up"
    DOWN = "down"
    CENTER_OUT = "center-out"
    DIAGONAL = "diagonal"


class FitMode(str, Enum):
    """How a visual layer is fitted into an explicit box or the frame."""

    CONTAIN = "contain"  # Scale down, pad to the box
    COVER = "cover"  # Scale up, crop to the box
    STRETCH = "stretch"  # Ignore aspect ratio


# Aspect ratio -> output frame size when a timeline sets no resolution
ASPECT_RATIO_SIZES: dict[str, tuple[int, int]] = {
    "16:9": (1920, 1080),
    "9:16": (1080, 1920),
    "1:1": (1080, 1080),
    "4:3": (1440, 1080),
    "4:5": (1080, 1350),
    "21:9": (2560, 1080),
}

PLATFORM_ASPECT_RATIOS: dict[str, str] = {
    "tiktok": "9:16",
    "instagram-story": "9:16",
    "youtube-shorts": "9:16",
    "instagram": "1:1",
    "youtube": "16:9",
    "twitter": "16:9",
    "linkedin": "16:9",
}


class ValueModel(BaseModel):
    """Immutable base for every value type in the composition model."""

    model_config = ConfigDict(frozen=True)


# =============================================================================
# POSITION & STYLE VALUES
# =============================================================================


class Position(ValueModel):
    """
    Where a layer lands in the output frame.

    ``x``/``y`` accept absolute pixels (``120`` or ``"120px"``), percentages
    of the frame (``"50%"``) or axis keywords (``left``/``center``/``right``,
    ``top``/``middle``/``bottom``). ``anchor`` names the point of the layer
    that is placed at (x, y), one of the 9-point grid names.
    """

    x: float | str = Field(default=0, description="Pixels, percentage or keyword")
    y: float | str = Field(default=0, description="Pixels, percentage or keyword")
    anchor: str | None = Field(
        default=None, description="top-left, top, top-right, left, center, ..."
    )
    margin: float = Field(
        default=0, description="Inset applied to edge keywords (left/right/top/bottom)"
    )

    @classmethod
    def named(cls, name: str, margin: float = 0) -> Position:
        """Place a layer at one of the 9 grid points, anchored at the same point."""
        key = name.strip().lower().replace("_", "-")
        vertical, _, horizontal = key.partition("-")
        if not horizontal:
            if key in ("top", "bottom"):
                vertical, horizontal = key, "center"
            elif key in ("left", "right"):
                vertical, horizontal = "middle", key
            else:
                vertical, horizontal = "middle", "center"
        if vertical == "center":
            vertical = "middle"
        return cls(x=horizontal, y=vertical, anchor=key, margin=margin)

    @classmethod
    def centered(cls) -> Position:
        return cls(x="50%", y="50%", anchor="center")


class Crop(ValueModel):
    x: int = Field(default=0, ge=0)
    y: int = Field(default=0, ge=0)
    width: int = Field(gt=0)
    height: int = Field(gt=0)


class Transform(ValueModel):
    """Geometry applied to a visual layer before effects."""

    width: int | None = Field(default=None, gt=0, description="Target width in px")
    height: int | None = Field(default=None, gt=0, description="Target height in px")
    scale: float | None = Field(
        default=None, gt=0, description="Uniform scale factor of the source size"
    )
    fit: FitMode | None = Field(
        default=None, description="Fit mode (None = contain for the base layer)"
    )
    crop: Crop | None = None
    rotation: float = Field(default=0.0, description="Clockwise rotation in degrees")
    flip_horizontal: bool = False
    flip_vertical: bool = False


class VisualEffects(ValueModel):
    """Color and style effects; None leaves the property untouched."""

    brightness: float | None = Field(default=None, description="-1.0 to 1.0")
    contrast: float | None = Field(default=None, description="0.0 to 2.0+, 1 = none")
    saturation: float | None = Field(default=None, description="0.0 to 3.0, 1 = none")
    gamma: float | None = Field(default=None, description="0.1 to 10.0, 1 = none")
    blur: float | None = Field(default=None, description="Box blur radius in px")
    vignette: float | None = Field(default=None, description="Strength 0.0 to 1.0")

    @property
    def has_color_grade(self) -> bool:
        return any(
            value is not None
            for value in (self.brightness, self.contrast, self.saturation, self.gamma)
        )


class ChromaKey(ValueModel):
    """Chroma key parameters. Out-of-range values are clamped when compiled."""

    color: str | None = Field(default=None, description="Key color (None = green)")
    similarity: float = Field(default=0.4, description="Color match radius, 0-1")
    blend: float = Field(default=0.1, description="Edge softness, 0-1")
    yuv: bool = Field(default=False, description="Compare in YUV space")


class Border(ValueModel):
    width: float = Field(default=2, ge=0)
    color: str = "white"


class Shadow(ValueModel):
    color: str = "black"
    opacity: float = Field(default=0.5, description="Clamped to 0-1")
    offset_x: float = 3
    offset_y: float = 3
    blur: float = Field(default=5, ge=0)


class TextStroke(ValueModel):
    color: str = "black"
    width: float = Field(default=2, ge=0)


class TextBackground(ValueModel):
    color: str = "black@0.5"
    padding: float = Field(default=5, ge=0)
    radius: float = Field(default=0, ge=0)
    opacity: float | None = None


class TextStyle(ValueModel):
    """Abstract text style; resolved to drawtext parameters at compile time."""

    font_family: str | None = None
    font_file: str | None = None
    font_size: float = 48
    color: str = "white"
    opacity: float | None = None
    stroke: TextStroke | None = None
    background: TextBackground | None = None
    shadow: Shadow | None = None
    line_spacing: float | None = None


class PanZoomOptions(ValueModel):
    """Ken Burns move: zoom from start_zoom to end_zoom along direction."""

    direction: PanDirection = PanDirection.CENTER_OUT
    start_zoom: float = Field(default=1.0, gt=0)
    end_zoom: float = Field(default=1.3, gt=0)
    duration: float = Field(default=5.0, gt=0)
    easing: Easing = Easing.EASE_IN_OUT
    fps: float | None = Field(default=None, gt=0)


# =============================================================================
# LAYERS
# =============================================================================


class LayerBase(ValueModel):
    name: str = Field(default="", description="Display name")
    start_time: float = Field(default=0.0, ge=0, description="Seconds on the timeline")
    duration: float | None = Field(default=None, gt=0)
    end_time: float | None = Field(default=None)

    @model_validator(mode="after")
    def check_window(self) -> LayerBase:
        if self.end_time is not None:
            if self.end_time <= self.start_time:
                raise ValueError("end_time must be greater than start_time")
            if (
                self.duration is not None
                and abs(self.start_time + self.duration - self.end_time) > 1e-6
            ):
                raise ValueError("duration and end_time disagree")
        return self

    @property
    def end(self) -> float | None:
        """End time on the timeline, or None when the layer is unbounded."""
        if self.end_time is not None:
            return self.end_time
        if self.duration is not None:
            return self.start_time + self.duration
        return None

    @property
    def span(self) -> float | None:
        end = self.end
        return None if end is None else end - self.start_time

    def shifted(self, offset: float) -> LayerBase:
        """Copy of this layer moved by ``offset`` seconds."""
        update: dict[str, Any] = {"start_time": self.start_time + offset}
        if self.end_time is not None:
            update["end_time"] = self.end_time + offset
        return self.model_copy(update=update)


class VisualLayer(LayerBase):
    position: Position = Field(default_factory=Position)
    transform: Transform = Field(default_factory=Transform)
    effects: VisualEffects = Field(default_factory=VisualEffects)
    opacity: float | None = Field(default=None, description="Clamped to 0-1")
    chroma_key: ChromaKey | None = None
    border_radius: float = Field(default=0, ge=0)
    border: Border | None = None
    shadow: Shadow | None = None


class VideoLayer(VisualLayer):
    type: Literal["video"] = "video"
    source: str = Field(description="Source reference, resolved to a local path")
    trim_start: float = Field(default=0.0, ge=0, description="Source in-point (s)")
    trim_end: float | None = Field(default=None, description="Source out-point (s)")
    speed: float = Field(default=1.0, gt=0)

    @model_validator(mode="after")
    def check_trim(self) -> VideoLayer:
        if self.trim_end is not None and self.trim_end <= self.trim_start:
            raise ValueError("trim_end must be greater than trim_start")
        return self

    @property
    def source_span(self) -> float | None:
        """Timeline seconds covered by the trimmed source at the layer's speed."""
        if self.trim_end is None:
            return None
        return (self.trim_end - self.trim_start) / self.speed


class ImageLayer(VisualLayer):
    type: Literal["image"] = "image"
    source: str = Field(description="Source reference, resolved to a local path")
    ken_burns: PanZoomOptions | None = None


class AudioLayer(LayerBase):
    type: Literal["audio"] = "audio"
    source: str = Field(description="Source reference, resolved to a local path")
    trim_start: float = Field(default=0.0, ge=0)
    trim_end: float | None = None
    volume: float = Field(default=1.0, ge=0)
    fade_in: float = Field(default=0.0, ge=0)
    fade_out: float = Field(default=0.0, ge=0)
    pitch: float = Field(default=1.0, gt=0, description="Pitch factor, 1 = unchanged")
    tempo: float = Field(default=1.0, gt=0, description="Playback speed factor")
    lowpass: float | None = Field(default=None, gt=0, description="Cutoff in Hz")
    highpass: float | None = Field(default=None, gt=0, description="Cutoff in Hz")

    @model_validator(mode="after")
    def check_trim(self) -> AudioLayer:
        if self.trim_end is not None and self.trim_end <= self.trim_start:
            raise ValueError("trim_end must be greater than trim_start")
        return self

    @property
    def source_span(self) -> float | None:
        if self.trim_end is None:
            return None
        return (self.trim_end - self.trim_start) / self.tempo


class TextLayer(LayerBase):
    type: Literal["text"] = "text"
    text: str
    position: Position = Field(default_factory=Position.centered)
    style: TextStyle = Field(default_factory=TextStyle)


class FilterLayer(LayerBase):
    type: Literal["filter"] = "filter"
    filter_name: str = Field(description="Renderer filter name, e.g. 'eq'")
    params: dict[str, float | int | bool | str | None] = Field(
        default_factory=dict, description="Ordered filter parameters"
    )


Layer = Annotated[
    Union[VideoLayer, ImageLayer, AudioLayer, TextLayer, FilterLayer],
    Field(discriminator="type"),
]

LAYER_TYPES = (VideoLayer, ImageLayer, AudioLayer, TextLayer, FilterLayer)

# Assumed spans for layers with no explicit end when computing duration
UNBOUNDED_MEDIA_SECONDS = 30.0
UNBOUNDED_OTHER_SECONDS = 5.0


# =============================================================================
# TIMELINE
# =============================================================================


class TimelineOptions(ValueModel):
    """Global output options."""

    width: int | None = Field(default=None, gt=0)
    height: int | None = Field(default=None, gt=0)
    frame_rate: float | None = Field(default=None, gt=0)
    aspect_ratio: str | None = Field(default=None, description="e.g. '16:9'")
    duration: float | None = Field(default=None, gt=0)
    background_color: str = "black"

    def frame_size(self, default: tuple[int, int] = (1920, 1080)) -> tuple[int, int]:
        if self.width and self.height:
            return self.width, self.height
        if self.aspect_ratio in ASPECT_RATIO_SIZES:
            return ASPECT_RATIO_SIZES[self.aspect_ratio]
        return default


class Timeline(ValueModel):
    """
    Immutable, ordered sequence of layers plus global options.

    Example:
        timeline = (
            Timeline()
            .add_video("intro.mp4", duration=10)
            .add_text("Hello", start_time=2, duration=3)
        )
    """

    layers: tuple[Layer, ...] = ()
    options: TimelineOptions = Field(default_factory=TimelineOptions)

    # -- layer builders -------------------------------------------------------

    def add_layer(self, layer: Any) -> Timeline:
        return self.model_copy(update={"layers": self.layers + (layer,)})

    def add_video(self, source: str, **fields: Any) -> Timeline:
        return self.add_layer(VideoLayer(source=source, **fields))

    def add_image(self, source: str, **fields: Any) -> Timeline:
        """Add a still image. Without duration/end_time it spans the timeline, or 5 s on its own."""
        return self.add_layer(ImageLayer(source=source, **fields))

    def add_audio(self, source: str, **fields: Any) -> Timeline:
        return self.add_layer(AudioLayer(source=source, **fields))

    def add_text(self, text: str, **fields: Any) -> Timeline:
        if "duration" not in fields and "end_time" not in fields:
            fields["duration"] = UNBOUNDED_OTHER_SECONDS
        return self.add_layer(TextLayer(text=text, **fields))

    def add_filter(
        self, filter_name: str, params: dict[str, Any] | None = None, **fields: Any
    ) -> Timeline:
        return self.add_layer(
            FilterLayer(filter_name=filter_name, params=params or {}, **fields)
        )

    def add_watermark(
        self,
        source: str,
        corner: str = "bottom-right",
        margin: float = 20,
        opacity: float = 0.7,
        scale: float | None = None,
    ) -> Timeline:
        """Add an image pinned to a corner for the whole timeline."""
        return self.add_image(
            source,
            name="watermark",
            position=Position.named(corner, margin=margin),
            opacity=opacity,
            transform=Transform(scale=scale),
        )

    # -- global options -------------------------------------------------------

    def _with_options(self, **update: Any) -> Timeline:
        options = TimelineOptions(**{**self.options.model_dump(), **update})
        return self.model_copy(update={"options": options})

    def set_resolution(self, width: int, height: int) -> Timeline:
        return self._with_options(width=width, height=height)

    def set_frame_rate(self, frame_rate: float) -> Timeline:
        return self._with_options(frame_rate=frame_rate)

    def set_aspect_ratio(self, aspect_ratio: str) -> Timeline:
        return self._with_options(aspect_ratio=aspect_ratio)

    def set_duration(self, duration: float) -> Timeline:
        return self._with_options(duration=duration)

    # -- queries --------------------------------------------------------------

    @property
    def visual_layers(self) -> list[Any]:
        return [layer for layer in self.layers if not isinstance(layer, AudioLayer)]

    @property
    def audio_layers(self) -> list[AudioLayer]:
        return [layer for layer in self.layers if isinstance(layer, AudioLayer)]

    def get_duration(self) -> float:
        """
        Total duration in seconds.

        Uses the explicit duration option when set; otherwise the latest
        layer end. Unbounded video/audio layers count as 30 s, unbounded text
        as 5 s. Unbounded images and filters follow the other layers; when
        nothing else bounds the timeline, unbounded images count as 5 s.
        """
        if self.options.duration is not None:
            return self.options.duration

        latest = 0.0
        open_images: list[float] = []
        for layer in self.layers:
            end = getattr(layer, "end", None)
            if end is None and isinstance(layer, (VideoLayer, AudioLayer)):
                source_span = layer.source_span
                span = source_span if source_span is not None else UNBOUNDED_MEDIA_SECONDS
                end = layer.start_time + span
            elif end is None and isinstance(layer, TextLayer):
                end = layer.start_time + UNBOUNDED_OTHER_SECONDS
            elif end is None and isinstance(layer, ImageLayer):
                open_images.append(layer.start_time + UNBOUNDED_OTHER_SECONDS)
            if end is not None:
                latest = max(latest, end)
        if not latest and open_images:
            latest = max(open_images)
        return latest

    def concat(self, other: Timeline) -> Timeline:
        """Append ``other``'s layers, shifted to start where this timeline ends."""
        offset = self.get_duration()
        shifted = tuple(layer.shifted(offset) for layer in other.layers)
        timeline = self.model_copy(update={"layers": self.layers + shifted})
        if self.options.duration is not None:
            timeline = timeline.set_duration(offset + other.get_duration())
        return timeline

    def validate_for_platform(self, platform: str) -> list[str]:
        """Return warnings when the output shape does not suit ``platform``."""
        warnings: list[str] = []
        expected = PLATFORM_ASPECT_RATIOS.get(platform.lower())
        if expected is None:
            warnings.append(f"Unknown platform '{platform}'")
            return warnings

        width, height = self.options.frame_size()
        target_w, target_h = ASPECT_RATIO_SIZES[expected]
        if width * target_h != height * target_w:
            warnings.append(
                f"Aspect ratio {width}x{height} does not match {platform} ({expected})"
            )
        if platform.lower() in ("tiktok", "youtube-shorts") and self.get_duration() > 60:
            warnings.append(f"Duration exceeds 60s for {platform}")
        return warnings

    # -- serialization --------------------------------------------------------

    def to_snapshot(self) -> dict[str, Any]:
        """Structural snapshot (layers + options) as plain JSON types."""
        return self.model_dump(mode="json")

    @classmethod
    def from_snapshot(cls, data: dict[str, Any]) -> Timeline:
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise StructuralError(
                f"Invalid timeline snapshot ({exc.error_count()} errors): {exc}"
            ) from exc

    def to_json(self) -> str:
        return json.dumps(self.to_snapshot(), sort_keys=True, separators=(",", ":"))

    @classmethod
    def from_json(cls, payload: str) -> Timeline:
        try:
            data = json.loads(payload)
        except json.JSONDecodeError as exc:
            raise StructuralError(f"Invalid timeline JSON: {exc}") from exc
        return cls.from_snapshot(data)
