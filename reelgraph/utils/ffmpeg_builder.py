"""
Timeline to ffmpeg compiler.

TimelineToFFmpeg.compile() consumes one Timeline snapshot and produces a
FilterGraph:
- one input per distinct source, in first-use order
- one labelled local chain per layer (labels from per-kind counters)
- visual layers folded left to right with overlay, in z-order
- filter layers applied to the running composite at their z-order position
- audio layers processed independently and mixed with amix

The emitter serializes a FilterGraph plus OutputOptions into a single
shell-safe command line. Both steps are pure: the same Timeline and options
always give a byte-identical command.
"""

from __future__ import annotations

import logging
import math
import re
import shlex
from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Any

from reelgraph.config import Settings, get_settings
from reelgraph.effects.pan_zoom import pan_zoom_fragment
from reelgraph.effects.picture_in_picture import chroma_key_fragment
from reelgraph.errors import InvalidFilterError, UnknownLayerError
from reelgraph.models.layer_models import (
    LAYER_TYPES,
    AudioLayer,
    FilterLayer,
    FitMode,
    ImageLayer,
    TextLayer,
    Timeline,
    Transform,
    VideoLayer,
)
from reelgraph.models.render_models import (
    AudioCodec,
    OutputOptions,
    RenderPreset,
    VideoCodec,
)
from reelgraph.utils.filter_graph import (
    ChainBuilder,
    FilterGraph,
    FilterNode,
    InputFile,
    LabelAllocator,
    between_expr,
    escape_text,
    format_number,
    format_param_value,
    quote_expr,
)
from reelgraph.utils.position_resolver import (
    ANCHOR_FACTORS,
    clamp,
    color_to_rgb,
    normalize_color,
    resolve_position,
    resolve_text_style,
    rounded_corner_mask,
)

logger = logging.getLogger(__name__)

AUDIO_SAMPLE_RATE = 48000
TEXT_LINE_HEIGHT = 1.2
TRANSPARENT = "black@0"

_FILTER_NAME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9_]*$")
# Characters still special inside a double-quoted shell word
_SHELL_SPECIALS = re.compile(r'([\\"$`])')

# codec -> (CPU encoder, GPU encoder or None)
VIDEO_ENCODERS = MappingProxyType(
    {
        VideoCodec.H264: ("libx264", "h264_nvenc"),
        VideoCodec.H265: ("libx265", "hevc_nvenc"),
        VideoCodec.VP9: ("libvpx-vp9", None),
    }
)

AUDIO_ENCODERS = MappingProxyType(
    {
        AudioCodec.AAC: "aac",
        AudioCodec.MP3: "libmp3lame",
        AudioCodec.OPUS: "libopus",
    }
)

NVENC_PRESETS = MappingProxyType(
    {
        "ultrafast": "fast",
        "superfast": "fast",
        "veryfast": "fast",
        "faster": "fast",
        "fast": "fast",
        "medium": "medium",
        "slow": "slow",
        "slower": "slow",
        "veryslow": "slow",
    }
)

FASTSTART_SUFFIXES = (".mp4", ".mov", ".m4v")


def _p(key: str, value: Any) -> tuple[str, str]:
    return key, format_param_value(value)


def _shifted_expr(expr: str, offset: float) -> str:
    if not offset:
        return expr
    sign = "+" if offset > 0 else "-"
    return f"{expr}{sign}{format_number(abs(offset))}"


def build_atempo_chain(tempo: float) -> list[float]:
    """Split a tempo factor into atempo steps inside the filter's [0.5, 2] range."""
    factors: list[float] = []

    while tempo < 0.5 or tempo > 2.0:
        if tempo < 0.5:
            factors.append(0.5)
            tempo /= 0.5
        elif tempo > 2.0:
            factors.append(2.0)
            tempo /= 2.0

    if abs(tempo - 1.0) > 1e-9:
        factors.append(tempo)

    return factors


# =============================================================================
# GRAPH BUILDER
# =============================================================================


class TimelineToFFmpeg:
    def __init__(
        self,
        timeline: Timeline,
        source_map: dict[str, str] | None = None,
        settings: Settings | None = None,
    ):
        self.timeline = timeline
        self.source_map = source_map
        self.settings = settings or get_settings()

        self.width, self.height = timeline.options.frame_size(
            (self.settings.default_width, self.settings.default_height)
        )
        self.frame_rate = timeline.options.frame_rate or self.settings.default_fps
        self.total_duration = timeline.get_duration() or None
        self.background = normalize_color(timeline.options.background_color, "black")

        self._reset()

    def _reset(self) -> None:
        self._labels = LabelAllocator()
        self._inputs: list[InputFile] = []
        self._input_index_map: dict[str, int] = {}
        self._nodes: list[FilterNode] = []
        self._layer_labels: list[str] = []
        self._audio_labels: list[str] = []
        self._composite: str | None = None

    # -- public ---------------------------------------------------------------

    def compile(self) -> FilterGraph:
        self._reset()
        layers = self.timeline.layers

        for index, layer in enumerate(layers):
            if not isinstance(layer, LAYER_TYPES):
                raise UnknownLayerError(index, layer)

        logger.debug(
            f"Compiling {len(layers)} layers at {self.width}x{self.height} "
            f"@ {format_number(self.frame_rate)}fps"
        )

        self._collect_inputs()

        for index, layer in enumerate(layers):
            if isinstance(layer, AudioLayer):
                label = self._process_audio_layer(layer)
            elif isinstance(layer, FilterLayer):
                label = self._apply_filter_layer(index, layer)
            elif isinstance(layer, TextLayer):
                label = self._process_text_layer(layer)
            else:
                label = self._process_visual_layer(layer)
            self._layer_labels.append(label)

        audio_out = self._mix_audio_tracks()

        logger.debug(f"Compiled {len(self._nodes)} filter nodes")

        return FilterGraph(
            width=self.width,
            height=self.height,
            frame_rate=self.frame_rate,
            duration=self.timeline.options.duration,
            inputs=list(self._inputs),
            nodes=list(self._nodes),
            layer_labels=list(self._layer_labels),
            video_output=self._composite,
            audio_output=audio_out,
        )

    def build(
        self, options: OutputOptions | None = None, output_path: str = "output.mp4"
    ) -> FFmpegCommand:
        return build_command(self.compile(), options, output_path, self.settings)

    def build_command_string(
        self, options: OutputOptions | None = None, output_path: str = "output.mp4"
    ) -> str:
        return self.build(options, output_path).to_string()

    # -- inputs ---------------------------------------------------------------

    def _collect_inputs(self) -> None:
        for layer in self.timeline.layers:
            source = getattr(layer, "source", None)
            if source is None or source in self._input_index_map:
                continue

            options: tuple[str, ...] = ()
            if isinstance(layer, ImageLayer):
                options = ("-loop", "1", "-framerate", format_number(self.frame_rate))
                if self.total_duration:
                    options += ("-t", format_number(self.total_duration))

            input_file = InputFile(
                index=len(self._inputs),
                source=source,
                file_path=self._resolve_source(source),
                options=options,
            )
            self._inputs.append(input_file)
            self._input_index_map[source] = input_file.index

    def _resolve_source(self, source: str) -> str:
        if self.source_map is None:
            return source
        path = self.source_map.get(source)
        if path is None:
            logger.warning(f"Source {source} not found in source_map")
            return source
        return path

    def _stream(self, layer: Any, kind: str) -> str:
        return f"{self._input_index_map[layer.source]}:{kind}"

    # -- shared helpers -------------------------------------------------------

    def _visible_end(self, layer: Any) -> float | None:
        end = layer.end
        if end is None and isinstance(layer, VideoLayer) and layer.source_span is not None:
            end = layer.start_time + layer.source_span
        return end

    def _gate(self, layer: Any) -> str:
        return quote_expr(
            between_expr(layer.start_time, self._visible_end(layer), format_number)
        )

    def _canvas(self) -> str:
        label = self._labels.next("canvas")
        params = [
            _p("c", self.background),
            _p("s", f"{self.width}x{self.height}"),
            _p("r", self.frame_rate),
        ]
        if self.total_duration:
            params.append(_p("d", self.total_duration))
        self._nodes.append(FilterNode("color", tuple(params), (), label))
        return label

    def _ensure_composite(self) -> str:
        if self._composite is None:
            self._composite = self._canvas()
        return self._composite

    def _is_full_frame(self, layer: Any) -> bool:
        """True when a layer can serve as the base composite as-is."""
        if layer.chroma_key is not None:
            return False
        transform = layer.transform
        if transform.scale is not None:
            return False
        if transform.width not in (None, self.width) or transform.height not in (None, self.height):
            return False
        resolved = resolve_position(layer.position, (self.width, self.height))
        return resolved.x == 0 and resolved.y == 0 and resolved.anchor == "top-left"

    # -- visual layers --------------------------------------------------------

    def _process_visual_layer(self, layer: VideoLayer | ImageLayer) -> str:
        kind = "video" if isinstance(layer, VideoLayer) else "image"
        label = self._labels.next(kind)
        is_base = self._composite is None and self._is_full_frame(layer)
        if not is_base:
            self._ensure_composite()

        chain = ChainBuilder(self._stream(layer, "v"), label)
        self._timing_prep(chain, layer, overlay=not is_base)
        self._keying(chain, layer)
        self._geometry(chain, layer, is_base=is_base)
        self._effects(chain, layer)
        if is_base:
            self._pad_base(chain, layer)
        self._nodes.extend(chain.build())

        if is_base:
            if layer.shadow is not None:
                logger.debug(f"Shadow on base layer {label} has nothing to fall on, skipped")
            self._composite = label
            return label

        if layer.shadow is not None:
            self._overlay_shadow(layer)
        self._overlay(layer, label)
        return label

    def _timing_prep(self, chain: ChainBuilder, layer: Any, overlay: bool) -> None:
        if isinstance(layer, VideoLayer):
            if layer.trim_start or layer.trim_end is not None:
                params = [_p("start", layer.trim_start)]
                if layer.trim_end is not None:
                    params.append(_p("end", layer.trim_end))
                chain.add("trim", *params)
            if layer.speed == 1:
                chain.add("setpts", _p("expr", "PTS-STARTPTS"))
            else:
                chain.add("setpts", _p("expr", f"(PTS-STARTPTS)/{format_number(layer.speed)}"))

        if layer.span is not None:
            chain.add("trim", _p("duration", layer.span))

        if overlay and layer.start_time > 0:
            chain.add(
                "setpts", _p("expr", f"PTS-STARTPTS+{format_number(layer.start_time)}/TB")
            )

    def _keying(self, chain: ChainBuilder, layer: Any) -> None:
        if layer.chroma_key is None:
            return
        fragment = chroma_key_fragment(layer.chroma_key)
        chain.add("chromakey", *(_p(key, value) for key, value in fragment.params()))

    def _geometry(self, chain: ChainBuilder, layer: Any, is_base: bool) -> None:
        transform = layer.transform
        sized = False

        if transform.crop is not None:
            crop = transform.crop
            chain.add(
                "crop",
                _p("w", crop.width),
                _p("h", crop.height),
                _p("x", crop.x),
                _p("y", crop.y),
            )

        if isinstance(layer, ImageLayer) and layer.ken_burns is not None:
            size = (transform.width or self.width, transform.height or self.height)
            fragment = pan_zoom_fragment(layer.ken_burns, size, self.frame_rate)
            chain.add("zoompan", *(_p(key, value) for key, value in fragment.params()))
            sized = True

        self._scale(chain, transform, is_base, sized)

        rotation = transform.rotation % 360
        if rotation:
            angle = math.radians(rotation)
            chain.add("format", _p("pix_fmts", "rgba"))
            chain.add(
                "rotate",
                _p("a", angle),
                _p("ow", f"rotw({format_number(angle)})"),
                _p("oh", f"roth({format_number(angle)})"),
                _p("c", "none"),
            )
        if transform.flip_horizontal:
            chain.add("hflip")
        if transform.flip_vertical:
            chain.add("vflip")

    def _scale(
        self, chain: ChainBuilder, transform: Transform, is_base: bool, sized: bool
    ) -> None:
        if transform.scale is not None:
            factor = format_number(transform.scale)
            chain.add("scale", _p("w", f"iw*{factor}"), _p("h", f"ih*{factor}"))
        elif transform.width or transform.height:
            default_fit = FitMode.CONTAIN if is_base else FitMode.STRETCH
            self._fit_box(
                chain,
                transform.width,
                transform.height,
                transform.fit or default_fit,
                self.background if is_base else TRANSPARENT,
            )
        elif is_base and not sized:
            self._fit_box(
                chain, self.width, self.height, transform.fit or FitMode.CONTAIN, self.background
            )
        else:
            return
        chain.add("setsar", _p("sar", 1))

    def _fit_box(
        self,
        chain: ChainBuilder,
        width: int | None,
        height: int | None,
        fit: FitMode,
        pad_color: str,
    ) -> None:
        if not (width and height) or fit == FitMode.STRETCH:
            chain.add("scale", _p("w", width or -2), _p("h", height or -2))
        elif fit == FitMode.COVER:
            chain.add(
                "scale",
                _p("w", width),
                _p("h", height),
                _p("force_original_aspect_ratio", "increase"),
            )
            chain.add("crop", _p("w", width), _p("h", height))
        else:
            chain.add(
                "scale",
                _p("w", width),
                _p("h", height),
                _p("force_original_aspect_ratio", "decrease"),
            )
            if pad_color == TRANSPARENT:
                chain.add("format", _p("pix_fmts", "rgba"))
            chain.add(
                "pad",
                _p("w", width),
                _p("h", height),
                _p("x", "(ow-iw)/2"),
                _p("y", "(oh-ih)/2"),
                _p("color", pad_color),
            )

    def _effects(self, chain: ChainBuilder, layer: Any) -> None:
        effects = layer.effects

        if effects.has_color_grade:
            grade = (
                ("brightness", effects.brightness),
                ("contrast", effects.contrast),
                ("saturation", effects.saturation),
                ("gamma", effects.gamma),
            )
            chain.add("eq", *(_p(key, value) for key, value in grade if value is not None))

        if effects.blur:
            radius = max(0.0, effects.blur)
            if radius > 0:
                chain.add("boxblur", _p("lr", radius), _p("cr", radius))

        if effects.vignette is not None:
            strength = clamp(effects.vignette, 0.0, 1.0, 0.0, "vignette")
            if strength > 0:
                min_angle = math.pi / 12
                max_angle = math.pi / 3
                angle = min_angle + (max_angle - min_angle) * strength
                chain.add("vignette", _p("angle", round(angle, 4)))

        if layer.border is not None and layer.border.width > 0:
            chain.add(
                "drawbox",
                _p("x", 0),
                _p("y", 0),
                _p("w", "iw"),
                _p("h", "ih"),
                _p("color", normalize_color(layer.border.color, "white")),
                _p("t", layer.border.width),
            )

        if layer.border_radius > 0:
            self._rounded_corners(chain, layer.border_radius)

        if layer.opacity is not None:
            opacity = clamp(layer.opacity, 0.0, 1.0, 1.0, "opacity")
            chain.add("format", _p("pix_fmts", "rgba"))
            chain.add("colorchannelmixer", _p("aa", opacity))

    def _rounded_corners(self, chain: ChainBuilder, radius: float) -> None:
        chain.add("format", _p("pix_fmts", "rgba"))
        chain.add(
            "geq",
            _p("r", "r(X,Y)"),
            _p("g", "g(X,Y)"),
            _p("b", "b(X,Y)"),
            _p("a", rounded_corner_mask(radius)),
        )

    def _pad_base(self, chain: ChainBuilder, layer: Any) -> None:
        """Hold the base composite on the background outside its own window."""
        params: list[tuple[str, str]] = []
        if layer.start_time > 0:
            params.append(_p("start_duration", layer.start_time))
        end = self._visible_end(layer)
        if end is not None and self.total_duration and end < self.total_duration:
            params.append(_p("stop_duration", self.total_duration - end))
        if params:
            params.append(_p("color", self.background))
            chain.add("tpad", *params)

    def _overlay(self, layer: Any, label: str) -> None:
        resolved = resolve_position(layer.position, (self.width, self.height), kind="overlay")
        output = self._labels.next("composite")
        self._nodes.append(
            FilterNode(
                "overlay",
                (
                    _p("x", resolved.x_expr),
                    _p("y", resolved.y_expr),
                    ("enable", self._gate(layer)),
                    _p("eof_action", "pass"),
                ),
                (self._composite, label),
                output,
            )
        )
        self._composite = output

    def _overlay_shadow(self, layer: Any) -> None:
        """Overlay a tinted, blurred copy of the layer, offset, under the layer itself."""
        shadow = layer.shadow
        label = self._labels.next("shadow")
        chain = ChainBuilder(self._stream(layer, "v"), label)
        self._timing_prep(chain, layer, overlay=True)
        self._keying(chain, layer)
        self._geometry(chain, layer, is_base=False)
        if layer.border_radius > 0:
            self._rounded_corners(chain, layer.border_radius)

        red, green, blue = color_to_rgb(shadow.color)
        opacity = clamp(shadow.opacity, 0.0, 1.0, 0.5, "shadow opacity")
        chain.add("format", _p("pix_fmts", "rgba"))
        chain.add(
            "lutrgb",
            _p("r", red),
            _p("g", green),
            _p("b", blue),
            _p("a", f"val*{format_number(opacity)}"),
        )
        if shadow.blur > 0:
            chain.add(
                "boxblur", _p("lr", shadow.blur), _p("cr", shadow.blur), _p("ar", shadow.blur)
            )
        self._nodes.extend(chain.build())

        resolved = resolve_position(layer.position, (self.width, self.height), kind="overlay")
        output = self._labels.next("composite")
        self._nodes.append(
            FilterNode(
                "overlay",
                (
                    _p("x", _shifted_expr(resolved.x_expr, shadow.offset_x)),
                    _p("y", _shifted_expr(resolved.y_expr, shadow.offset_y)),
                    ("enable", self._gate(layer)),
                    _p("eof_action", "pass"),
                ),
                (self._composite, label),
                output,
            )
        )
        self._composite = output

    # -- text layers ----------------------------------------------------------

    def _process_text_layer(self, layer: TextLayer) -> str:
        label = self._labels.next("text")
        self._ensure_composite()

        style = resolve_text_style(layer.style, self.settings.font_file)
        if style.mask_expr is not None:
            logger.debug(f"Text layer {label}: box corners are drawn square")
        style_params = tuple((key, format_param_value(value)) for key, value in style.params)

        canvas_params = [
            _p("c", TRANSPARENT),
            _p("s", f"{self.width}x{self.height}"),
            _p("r", self.frame_rate),
        ]
        if self.total_duration:
            canvas_params.append(_p("d", self.total_duration))

        chain = ChainBuilder("", label)
        chain.add("color", *canvas_params)
        chain.add("format", _p("pix_fmts", "rgba"))

        resolved = resolve_position(
            layer.position, (self.width, self.height), kind="text", default_anchor="center"
        )
        lines = layer.text.split("\n")
        if len(lines) == 1:
            coords = [(resolved.x_expr, resolved.y_expr)]
        else:
            line_height = style.font_size * TEXT_LINE_HEIGHT + (layer.style.line_spacing or 0)
            _, fy = ANCHOR_FACTORS[resolved.anchor]
            top = resolved.y - fy * line_height * len(lines)
            coords = [
                (resolved.x_expr, format_number(round(top + row * line_height, 3)))
                for row in range(len(lines))
            ]

        gate = self._gate(layer)
        for line, (x_expr, y_expr) in zip(lines, coords):
            if not line.strip():
                continue
            chain.add(
                "drawtext",
                ("text", escape_text(line)),
                *style_params,
                _p("x", x_expr),
                _p("y", y_expr),
                ("enable", gate),
            )

        self._nodes.extend(chain.build())

        output = self._labels.next("composite")
        self._nodes.append(
            FilterNode(
                "overlay", (_p("x", 0), _p("y", 0)), (self._composite, label), output
            )
        )
        self._composite = output
        return label

    # -- filter layers --------------------------------------------------------

    def _apply_filter_layer(self, index: int, layer: FilterLayer) -> str:
        if not _FILTER_NAME_RE.match(layer.filter_name):
            raise InvalidFilterError(index, layer.filter_name, "is not a legal filter name")

        params: list[tuple[str, str]] = []
        for key, value in layer.params.items():
            if not key.isidentifier():
                raise InvalidFilterError(
                    index, layer.filter_name, f"has an illegal parameter name '{key}'"
                )
            if value is None:
                continue
            params.append(_p(key, value))

        if layer.params and not params:
            raise InvalidFilterError(index, layer.filter_name, "has no graph-legal parameters")

        if layer.start_time > 0 or layer.end is not None:
            params.append(("enable", self._gate(layer)))

        composite = self._ensure_composite()
        label = self._labels.next("filter")
        self._nodes.append(FilterNode(layer.filter_name, tuple(params), (composite,), label))
        self._composite = label
        return label

    # -- audio layers ---------------------------------------------------------

    def _process_audio_layer(self, layer: AudioLayer) -> str:
        label = self._labels.next("audio")
        chain = ChainBuilder(self._stream(layer, "a"), label)

        if layer.trim_start or layer.trim_end is not None:
            params = [_p("start", layer.trim_start)]
            if layer.trim_end is not None:
                params.append(_p("end", layer.trim_end))
            chain.add("atrim", *params)
        chain.add("asetpts", _p("expr", "PTS-STARTPTS"))

        for factor in build_atempo_chain(layer.tempo):
            chain.add("atempo", _p("tempo", factor))

        if layer.pitch != 1:
            chain.add("asetrate", _p("r", round(AUDIO_SAMPLE_RATE * layer.pitch)))
            chain.add("aresample", _p("osr", AUDIO_SAMPLE_RATE))
            for factor in build_atempo_chain(1 / layer.pitch):
                chain.add("atempo", _p("tempo", factor))

        span = layer.span
        if span is not None:
            chain.add("atrim", _p("duration", span))

        if layer.volume != 1:
            chain.add("volume", _p("volume", layer.volume))

        if layer.fade_in > 0:
            chain.add("afade", _p("t", "in"), _p("st", 0), _p("d", layer.fade_in))

        if layer.fade_out > 0:
            fade_span = span if span is not None else layer.source_span
            if fade_span is None:
                logger.debug(f"Fade-out on unbounded audio {layer.source} skipped")
            else:
                chain.add(
                    "afade",
                    _p("t", "out"),
                    _p("st", max(0.0, fade_span - layer.fade_out)),
                    _p("d", layer.fade_out),
                )

        if layer.lowpass is not None:
            chain.add("lowpass", _p("f", layer.lowpass))
        if layer.highpass is not None:
            chain.add("highpass", _p("f", layer.highpass))

        if layer.start_time > 0:
            delay_ms = round(layer.start_time * 1000)
            chain.add("adelay", _p("delays", delay_ms), _p("all", 1))

        self._nodes.extend(chain.build())
        self._audio_labels.append(label)
        return label

    def _mix_audio_tracks(self) -> str | None:
        if not self._audio_labels:
            return None
        if len(self._audio_labels) == 1:
            return self._audio_labels[0]

        output = self._labels.next("mix")
        self._nodes.append(
            FilterNode(
                "amix",
                (_p("inputs", len(self._audio_labels)), _p("duration", "longest")),
                tuple(self._audio_labels),
                output,
            )
        )
        return output


# =============================================================================
# COMMAND EMITTER
# =============================================================================


def shell_escape(value: str) -> str:
    """Escape ``value`` for use inside a double-quoted shell word."""
    return _SHELL_SPECIALS.sub(r"\\\1", value)


@dataclass
class FFmpegCommand:
    program: str
    global_args: list[str]
    inputs: list[InputFile]
    filter_complex: str
    output_maps: list[str]
    output_options: list[str]
    output_file: str

    def to_args(self) -> list[str]:
        """Argument vector for direct process execution (no shell quoting)."""
        args = [self.program, *self.global_args]
        for input_file in self.inputs:
            args.extend(input_file.to_args())
        if self.filter_complex:
            args.extend(["-filter_complex", self.filter_complex])
        for label in self.output_maps:
            args.extend(["-map", f"[{label}]"])
        args.extend(self.output_options)
        args.append(self.output_file)
        return args

    def to_string(self) -> str:
        parts = [shlex.quote(self.program)]
        parts.extend(shlex.quote(arg) for arg in self.global_args)

        for input_file in self.inputs:
            parts.extend(shlex.quote(arg) for arg in input_file.options)
            parts.extend(["-i", shlex.quote(input_file.file_path)])

        if self.filter_complex:
            parts.append(f'-filter_complex "{shell_escape(self.filter_complex)}"')

        for label in self.output_maps:
            parts.append(f'-map "[{label}]"')

        parts.extend(shlex.quote(option) for option in self.output_options)
        parts.append(shlex.quote(self.output_file))

        return " ".join(parts)


def build_output_options(
    graph: FilterGraph, preset: RenderPreset, output_path: str = ""
) -> list[str]:
    options: list[str] = []
    video = preset.video

    if graph.video_output:
        cpu_encoder, gpu_encoder = VIDEO_ENCODERS[video.codec]
        use_gpu = preset.use_gpu and gpu_encoder is not None
        options.extend(["-c:v", gpu_encoder if use_gpu else cpu_encoder])

        if video.crf is not None:
            options.extend(["-cq" if use_gpu else "-crf", str(video.crf)])

        if video.bitrate:
            options.extend(["-b:v", video.bitrate])

        if use_gpu:
            options.extend(["-preset", NVENC_PRESETS.get(video.preset, "medium")])
        elif video.codec != VideoCodec.VP9:
            options.extend(["-preset", video.preset])

        if video.profile:
            options.extend(["-profile:v", video.profile])
        if video.level:
            options.extend(["-level", video.level])
        if video.keyframe_interval:
            options.extend(["-g", str(video.keyframe_interval)])
        if video.tune and not use_gpu:
            options.extend(["-tune", video.tune])

        options.extend(["-pix_fmt", video.pixel_format])
        options.extend(["-r", format_number(graph.frame_rate)])

    if graph.audio_output:
        audio = preset.audio
        options.extend(["-c:a", AUDIO_ENCODERS[audio.codec]])
        options.extend(["-b:a", audio.bitrate])
        options.extend(["-ar", str(audio.sample_rate)])
        options.extend(["-ac", str(audio.channels)])

    if graph.duration:
        options.extend(["-t", format_number(graph.duration)])

    if graph.video_output and output_path.lower().endswith(FASTSTART_SUFFIXES):
        options.extend(["-movflags", "+faststart"])

    return options


def build_command(
    graph: FilterGraph,
    options: OutputOptions | None = None,
    output_path: str = "output.mp4",
    settings: Settings | None = None,
) -> FFmpegCommand:
    options = options or OutputOptions()
    program = options.ffmpeg_bin or (settings or get_settings()).ffmpeg_bin

    inputs = list(graph.inputs)
    if options.hardware_acceleration:
        inputs = [
            replace(
                input_file,
                options=("-hwaccel", options.hardware_acceleration, *input_file.options),
            )
            for input_file in inputs
        ]

    output_maps = [label for label in (graph.video_output, graph.audio_output) if label]

    return FFmpegCommand(
        program=program,
        global_args=["-y" if options.overwrite else "-n"],
        inputs=inputs,
        filter_complex=graph.render(),
        output_maps=output_maps,
        output_options=[
            *build_output_options(graph, options.preset, output_path),
            *options.extra_args,
        ],
        output_file=output_path,
    )


def emit(
    graph: FilterGraph,
    options: OutputOptions | None = None,
    output_path: str = "output.mp4",
    settings: Settings | None = None,
) -> str:
    """Serialize a compiled graph into one shell command line."""
    return build_command(graph, options, output_path, settings).to_string()


def build_render_command(
    timeline: Timeline | dict[str, Any],
    source_map: dict[str, str] | None = None,
    options: OutputOptions | None = None,
    output_path: str = "output.mp4",
) -> str:
    if isinstance(timeline, dict):
        timeline = Timeline.from_snapshot(timeline)
    converter = TimelineToFFmpeg(timeline, source_map)
    return converter.build_command_string(options, output_path)
