"""
Ken Burns (pan/zoom) fragments.

A PanZoomFragment is a pure function of PanZoomOptions plus the output
frame: it can be evaluated in Python (``zoom_at``/``offset_at``) and
rendered as parameters of the renderer's zoompan filter. Both views use
the same easing curves, so the preview math matches the emitted graph.

The "suggested" variant picks a move from a fixed content-type/platform
table; there is no learned model involved.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from types import MappingProxyType

from reelgraph.models.layer_models import (
    Easing,
    PanDirection,
    PanZoomOptions,
    Timeline,
)
from reelgraph.utils.filter_graph import format_number
from reelgraph.utils.position_resolver import clamp

logger = logging.getLogger(__name__)

DEFAULT_FPS = 25.0
MIN_ZOOM = 1.0
MAX_ZOOM = 10.0

EASING_EXPRESSIONS = MappingProxyType(
    {
        Easing.LINEAR: "{p}",
        Easing.EASE_IN: "pow({p},2)",
        Easing.EASE_OUT: "1-pow(1-{p},2)",
        Easing.EASE_IN_OUT: "if(lt({p},0.5),2*pow({p},2),1-pow(2-2*{p},2)/2)",
        Easing.SINUSOIDAL: "0.5-0.5*cos(PI*{p})",
    }
)

# (x_start, x_end, y_start, y_end) as fractions of the free pan room
DIRECTION_TRAJECTORIES = MappingProxyType(
    {
        PanDirection.LEFT: (1.0, 0.0, 0.5, 0.5),
        PanDirection.RIGHT: (0.0, 1.0, 0.5, 0.5),
        PanDirection.UP: (0.5, 0.5, 1.0, 0.0),
        PanDirection.DOWN: (0.5, 0.5, 0.0, 1.0),
        PanDirection.CENTER_OUT: (0.5, 0.5, 0.5, 0.5),
        PanDirection.DIAGONAL: (0.0, 1.0, 0.0, 1.0),
    }
)

PLATFORM_DURATIONS = MappingProxyType(
    {"tiktok": 3.0, "instagram": 4.0, "youtube": 5.0}
)

# content type -> (direction, start_zoom, end_zoom, duration factor, easing)
CONTENT_MOVES = MappingProxyType(
    {
        "landscape": (PanDirection.RIGHT, 1.2, 1.2, 1.5, Easing.LINEAR),
        "portrait": (PanDirection.CENTER_OUT, 1.0, 1.3, 1.0, Easing.EASE_IN_OUT),
        "group-photo": (PanDirection.RIGHT, 1.0, 1.2, 1.2, Easing.EASE_IN_OUT),
        "text-heavy": (PanDirection.CENTER_OUT, 1.0, 1.1, 1.0, Easing.EASE_OUT),
        "action": (PanDirection.DIAGONAL, 1.2, 1.5, 0.8, Easing.EASE_IN),
    }
)
DEFAULT_MOVE = (PanDirection.CENTER_OUT, 1.0, 1.3, 1.0, Easing.EASE_IN_OUT)


def ease(progress: float, easing: Easing) -> float:
    """Eased value in [0, 1] for linear progress in [0, 1]."""
    p = max(0.0, min(1.0, progress))
    if easing == Easing.EASE_IN:
        return p * p
    if easing == Easing.EASE_OUT:
        return 1 - (1 - p) ** 2
    if easing == Easing.EASE_IN_OUT:
        return 2 * p * p if p < 0.5 else 1 - (2 - 2 * p) ** 2 / 2
    if easing == Easing.SINUSOIDAL:
        return 0.5 - 0.5 * math.cos(math.pi * p)
    return p


def easing_expr(progress_expr: str, easing: Easing) -> str:
    return EASING_EXPRESSIONS[easing].format(p=progress_expr)


def _lerp_expr(start: float, end: float, eased: str) -> str:
    if start == end:
        return format_number(start)
    return f"{format_number(start)}+({format_number(end - start)})*({eased})"


@dataclass(frozen=True)
class PanZoomFragment:
    options: PanZoomOptions
    width: int
    height: int
    fps: float

    @property
    def start_zoom(self) -> float:
        return clamp(self.options.start_zoom, MIN_ZOOM, MAX_ZOOM, MIN_ZOOM, "start_zoom")

    @property
    def end_zoom(self) -> float:
        return clamp(self.options.end_zoom, MIN_ZOOM, MAX_ZOOM, MIN_ZOOM, "end_zoom")

    @property
    def frames(self) -> int:
        return max(1, round(self.options.duration * self.fps))

    def _eased(self, t: float) -> float:
        return ease(t / self.options.duration, self.options.easing)

    def zoom_at(self, t: float) -> float:
        return self.start_zoom + (self.end_zoom - self.start_zoom) * self._eased(t)

    def offset_at(self, t: float, source_size: tuple[int, int]) -> tuple[float, float]:
        """Top-left corner of the visible window, in source pixels."""
        src_w, src_h = source_size
        zoom = self.zoom_at(t)
        eased = self._eased(t)
        x0, x1, y0, y1 = DIRECTION_TRAJECTORIES[self.options.direction]
        room_x = src_w - src_w / zoom
        room_y = src_h - src_h / zoom
        return room_x * (x0 + (x1 - x0) * eased), room_y * (y0 + (y1 - y0) * eased)

    def focal_point_at(self, t: float, source_size: tuple[int, int]) -> tuple[float, float]:
        """Center of the visible window, in source pixels."""
        x, y = self.offset_at(t, source_size)
        zoom = self.zoom_at(t)
        return x + source_size[0] / zoom / 2, y + source_size[1] / zoom / 2

    def params(self) -> list[tuple[str, str]]:
        """
        zoompan parameters, unescaped.

        One output frame per input frame (``d=1``); progress comes from the
        output frame number so a looped still or a video both animate once
        over ``duration``.
        """
        frames = self.frames
        progress = f"min(on/{frames - 1},1)" if frames > 1 else "1"
        eased = easing_expr(progress, self.options.easing)
        x0, x1, y0, y1 = DIRECTION_TRAJECTORIES[self.options.direction]
        return [
            ("z", _lerp_expr(self.start_zoom, self.end_zoom, eased)),
            ("x", f"(iw-iw/zoom)*({_lerp_expr(x0, x1, eased)})"),
            ("y", f"(ih-ih/zoom)*({_lerp_expr(y0, y1, eased)})"),
            ("d", "1"),
            ("s", f"{self.width}x{self.height}"),
            ("fps", format_number(self.fps)),
        ]


def pan_zoom_fragment(
    options: PanZoomOptions, frame_size: tuple[int, int], fps: float | None = None
) -> PanZoomFragment:
    width, height = frame_size
    return PanZoomFragment(
        options=options, width=width, height=height, fps=options.fps or fps or DEFAULT_FPS
    )


# =============================================================================
# PRESET MOVES
# =============================================================================


def zoom_in(duration: float = 5.0, zoom: float = 1.5, easing: Easing = Easing.EASE_IN_OUT) -> PanZoomOptions:
    return PanZoomOptions(
        direction=PanDirection.CENTER_OUT,
        start_zoom=1.0,
        end_zoom=zoom,
        duration=duration,
        easing=easing,
    )


def zoom_out(duration: float = 5.0, zoom: float = 1.5, easing: Easing = Easing.EASE_IN_OUT) -> PanZoomOptions:
    return PanZoomOptions(
        direction=PanDirection.CENTER_OUT,
        start_zoom=zoom,
        end_zoom=1.0,
        duration=duration,
        easing=easing,
    )


def pan(
    direction: PanDirection | str,
    duration: float = 5.0,
    zoom: float = 1.2,
    easing: Easing = Easing.LINEAR,
) -> PanZoomOptions:
    """Constant-zoom pan; zoom must exceed 1 to leave room to move."""
    return PanZoomOptions(
        direction=PanDirection(direction),
        start_zoom=zoom,
        end_zoom=zoom,
        duration=duration,
        easing=easing,
    )


def suggest_pan_zoom(content_type: str, platform: str = "youtube") -> PanZoomOptions:
    """Pick a move for a still from the fixed content-type/platform table."""
    base_duration = PLATFORM_DURATIONS.get(platform.lower(), 5.0)
    direction, start, end, factor, easing = CONTENT_MOVES.get(
        content_type.lower(), DEFAULT_MOVE
    )
    return PanZoomOptions(
        direction=direction,
        start_zoom=start,
        end_zoom=end,
        duration=base_duration * factor,
        easing=easing,
    )


def apply_ken_burns(timeline: Timeline, options: PanZoomOptions) -> Timeline:
    """
    Add a zoompan filter over the composite built so far.

    The filter is not time-gated (zoompan has no timeline support); the
    move completes after ``options.duration`` and holds its last framing.
    """
    fragment = pan_zoom_fragment(
        options, timeline.options.frame_size(), timeline.options.frame_rate
    )
    logger.debug(
        f"Ken Burns {options.direction.value} {fragment.start_zoom}->{fragment.end_zoom} "
        f"over {options.duration}s"
    )
    return timeline.add_filter(
        "zoompan",
        dict(fragment.params()),
        name="ken-burns",
    )
