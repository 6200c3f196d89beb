"""
Position and style resolution.

Turns abstract Position/TextStyle values into the primitive coordinate
expressions and filter parameters used by the filter graph builder.
Invalid values never fail: they resolve to documented defaults and the
recovery is logged at DEBUG.

Defaults:
- unparseable x/y: frame center (50%)
- unknown anchor: top-left (center for text)
- invalid color: the caller-supplied default (white for text)
- non-positive font size: 48
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from types import MappingProxyType

from reelgraph.models.layer_models import Position, TextStyle
from reelgraph.utils.filter_graph import format_number

logger = logging.getLogger(__name__)

DEFAULT_FONT_SIZE = 48.0
DEFAULT_TEXT_PADDING = 5.0

ANCHOR_FACTORS = MappingProxyType(
    {
        "top-left": (0.0, 0.0),
        "top": (0.5, 0.0),
        "top-right": (1.0, 0.0),
        "left": (0.0, 0.5),
        "center": (0.5, 0.5),
        "right": (1.0, 0.5),
        "bottom-left": (0.0, 1.0),
        "bottom": (0.5, 1.0),
        "bottom-right": (1.0, 1.0),
    }
)

ANCHOR_ALIASES = MappingProxyType(
    {
        "top-center": "top",
        "bottom-center": "bottom",
        "center-left": "left",
        "middle-left": "left",
        "center-right": "right",
        "middle-right": "right",
        "middle": "center",
        "middle-center": "center",
        "center-center": "center",
    }
)

X_KEYWORDS = MappingProxyType({"left": 0.0, "center": 0.5, "middle": 0.5, "right": 1.0})
Y_KEYWORDS = MappingProxyType({"top": 0.0, "middle": 0.5, "center": 0.5, "bottom": 1.0})

# Width/height variables of the placed element in each filter's expression language
SIZE_VARIABLES = MappingProxyType(
    {"text": ("text_w", "text_h"), "overlay": ("overlay_w", "overlay_h")}
)

# Names the renderer understands, with their RGB values
NAMED_COLORS = MappingProxyType(
    {
        "black": "000000",
        "white": "FFFFFF",
        "red": "FF0000",
        "green": "008000",
        "blue": "0000FF",
        "yellow": "FFFF00",
        "cyan": "00FFFF",
        "magenta": "FF00FF",
        "orange": "FFA500",
        "purple": "800080",
        "pink": "FFC0CB",
        "gray": "808080",
        "grey": "808080",
        "silver": "C0C0C0",
        "gold": "FFD700",
        "navy": "000080",
        "teal": "008080",
        "lime": "00FF00",
        "maroon": "800000",
        "olive": "808000",
        "brown": "A52A2A",
        "transparent": "000000",
    }
)

_HEX_RE = re.compile(r"^(?:#|0x)?([0-9a-fA-F]{6})([0-9a-fA-F]{2})?$")
_RGB_RE = re.compile(
    r"^rgba?\(\s*(\d{1,3})\s*,\s*(\d{1,3})\s*,\s*(\d{1,3})\s*(?:,\s*([\d.]+)\s*)?\)$"
)


@dataclass(frozen=True)
class ResolvedPosition:
    x: float
    y: float
    anchor: str
    x_expr: str
    y_expr: str


@dataclass(frozen=True)
class ResolvedStyle:
    params: tuple[tuple[str, str], ...]
    font_size: float
    mask_expr: str | None = None


def clamp(value: float | None, low: float, high: float, default: float, name: str = "value") -> float:
    if value is None:
        return default
    try:
        numeric = float(value)
    except (TypeError, ValueError):
        logger.debug(f"Invalid {name} {value!r}, using {default}")
        return default
    if math.isnan(numeric):
        logger.debug(f"Invalid {name} {value!r}, using {default}")
        return default
    clamped = max(low, min(high, numeric))
    if clamped != numeric:
        logger.debug(f"Clamped {name} {numeric} into [{low}, {high}]")
    return clamped


def normalize_anchor(anchor: str | None, default: str = "top-left") -> str:
    if anchor is None:
        return default
    key = str(anchor).strip().lower().replace("_", "-").replace(" ", "-")
    key = ANCHOR_ALIASES.get(key, key)
    if key not in ANCHOR_FACTORS:
        logger.debug(f"Unknown anchor {anchor!r}, using {default}")
        return default
    return key


def normalize_color(
    value: str | None, default: str = "white", alpha: float | None = None
) -> str:
    """
    Normalize a color to the renderer's syntax.

    Accepts '#RRGGBB', '#RRGGBBAA', '0xRRGGBB', 'rgb(r,g,b)', 'rgba(r,g,b,a)',
    color names, and any of those with an '@alpha' suffix. Returns '0xRRGGBB'
    or a name, with '@alpha' when an alpha applies.
    """
    if value is None or not str(value).strip():
        return default

    text = str(value).strip()
    base, _, suffix = text.partition("@")
    base = base.strip()
    parsed_alpha: float | None = None

    if suffix:
        try:
            parsed_alpha = float(suffix)
        except ValueError:
            logger.debug(f"Invalid color alpha in {value!r}, using {default}")
            return default

    color: str | None = None
    hex_match = _HEX_RE.match(base)
    rgb_match = _RGB_RE.match(base.lower())
    if hex_match:
        color = f"0x{hex_match.group(1).upper()}"
        if hex_match.group(2):
            parsed_alpha = int(hex_match.group(2), 16) / 255
    elif rgb_match:
        channels = [int(rgb_match.group(i)) for i in (1, 2, 3)]
        if any(channel > 255 for channel in channels):
            logger.debug(f"Invalid color {value!r}, using {default}")
            return default
        color = "0x" + "".join(f"{channel:02X}" for channel in channels)
        if rgb_match.group(4):
            parsed_alpha = float(rgb_match.group(4))
    elif base.lower() in NAMED_COLORS:
        color = base.lower()
        if color == "transparent":
            color, parsed_alpha = "black", 0.0

    if color is None:
        logger.debug(f"Invalid color {value!r}, using {default}")
        return default

    if alpha is not None:
        parsed_alpha = alpha
    if parsed_alpha is None:
        return color
    parsed_alpha = clamp(parsed_alpha, 0.0, 1.0, 1.0, "color alpha")
    return f"{color}@{format_number(round(parsed_alpha, 3))}"


def color_to_rgb(
    value: str | None, default: tuple[int, int, int] = (0, 0, 0)
) -> tuple[int, int, int]:
    """RGB channels of a color in any form ``normalize_color`` accepts."""
    color = normalize_color(value, default="").split("@")[0]
    if color.startswith("0x"):
        hex_digits = color[2:]
    elif color in NAMED_COLORS:
        hex_digits = NAMED_COLORS[color]
    else:
        return default
    return tuple(int(hex_digits[i:i + 2], 16) for i in (0, 2, 4))


def _resolve_axis(
    value: float | str,
    frame_dim: float,
    margin: float,
    keywords: MappingProxyType,
) -> float:
    if isinstance(value, bool):
        value = str(value)
    if isinstance(value, (int, float)):
        if math.isfinite(value):
            return float(value)
    elif isinstance(value, str):
        text = value.strip().lower()
        if text in keywords:
            ratio = keywords[text]
            if ratio == 0.0:
                return float(margin)
            if ratio == 1.0:
                return frame_dim - margin
            return frame_dim * ratio
        try:
            if text.endswith("%"):
                parsed = frame_dim * float(text[:-1]) / 100
            elif text.endswith("px"):
                parsed = float(text[:-2])
            else:
                parsed = float(text)
        except ValueError:
            parsed = math.nan
        if math.isfinite(parsed):
            return parsed

    logger.debug(f"Invalid position value {value!r}, using frame center")
    return frame_dim / 2


def _offset_expr(coord: float, factor: float, size_var: str) -> str:
    base = format_number(coord)
    if factor == 0.0:
        return base
    if factor == 0.5:
        return f"{base}-{size_var}/2"
    return f"{base}-{size_var}"


def resolve_position(
    position: Position,
    frame_size: tuple[int, int],
    kind: str = "overlay",
    default_anchor: str = "top-left",
) -> ResolvedPosition:
    """
    Resolve ``position`` against ``frame_size``.

    ``x``/``y`` on the result are the target point in pixels; the
    expressions subtract the fraction of the element size needed so that
    the anchor point (not the top-left corner) lands on that target.
    """
    width, height = frame_size
    x = _resolve_axis(position.x, width, position.margin, X_KEYWORDS)
    y = _resolve_axis(position.y, height, position.margin, Y_KEYWORDS)
    anchor = normalize_anchor(position.anchor, default_anchor)
    fx, fy = ANCHOR_FACTORS[anchor]
    w_var, h_var = SIZE_VARIABLES.get(kind, SIZE_VARIABLES["overlay"])
    return ResolvedPosition(
        x=x,
        y=y,
        anchor=anchor,
        x_expr=_offset_expr(x, fx, w_var),
        y_expr=_offset_expr(y, fy, h_var),
    )


def resolve(
    position: Position,
    anchor: str | None,
    frame_size: tuple[int, int],
    kind: str = "overlay",
) -> tuple[str, str]:
    """Return (x_expr, y_expr) for ``position`` with an explicit ``anchor``."""
    if anchor is not None:
        position = position.model_copy(update={"anchor": anchor})
    resolved = resolve_position(position, frame_size, kind=kind)
    return resolved.x_expr, resolved.y_expr


def rounded_corner_mask(radius: float) -> str:
    """Alpha expression for the renderer's per-pixel evaluator that clears the corners."""
    r = format_number(max(0.0, radius))
    return (
        f"if(gt(abs(W/2-X),W/2-{r})*gt(abs(H/2-Y),H/2-{r})"
        f"*gt(hypot(abs(W/2-X)-(W/2-{r}),abs(H/2-Y)-(H/2-{r})),{r}),0,alpha(X,Y))"
    )


def resolve_text_style(
    style: TextStyle, default_font_file: str | None = None
) -> ResolvedStyle:
    """
    Map a TextStyle onto text-draw parameters.

    Values are returned unescaped; the graph builder escapes them.
    """
    params: list[tuple[str, str]] = []

    font_file = style.font_file
    if not font_file and style.font_family:
        if style.font_family.lower().endswith((".ttf", ".otf")):
            font_file = style.font_family
        else:
            params.append(("font", style.font_family))
    if not font_file and not style.font_family:
        font_file = default_font_file
    if font_file:
        params.append(("fontfile", font_file))

    font_size = style.font_size
    if not font_size or font_size <= 0:
        logger.debug(f"Invalid font size {style.font_size!r}, using {DEFAULT_FONT_SIZE}")
        font_size = DEFAULT_FONT_SIZE
    params.append(("fontsize", format_number(font_size)))

    opacity = None
    if style.opacity is not None:
        opacity = clamp(style.opacity, 0.0, 1.0, 1.0, "text opacity")
    params.append(("fontcolor", normalize_color(style.color, "white", alpha=opacity)))

    if style.stroke is not None and style.stroke.width > 0:
        params.append(("bordercolor", normalize_color(style.stroke.color, "black")))
        params.append(("borderw", format_number(style.stroke.width)))

    mask_expr = None
    background = style.background
    if background is not None:
        bg_alpha = None
        if background.opacity is not None:
            bg_alpha = clamp(background.opacity, 0.0, 1.0, 0.5, "background opacity")
        params.append(("box", "1"))
        params.append(
            ("boxcolor", normalize_color(background.color, "black@0.5", alpha=bg_alpha))
        )
        params.append(("boxborderw", format_number(background.padding)))
        if background.radius > 0:
            mask_expr = rounded_corner_mask(background.radius)

    if style.shadow is not None:
        shadow_alpha = clamp(style.shadow.opacity, 0.0, 1.0, 0.5, "shadow opacity")
        params.append(
            ("shadowcolor", normalize_color(style.shadow.color, "black", alpha=shadow_alpha))
        )
        params.append(("shadowx", format_number(style.shadow.offset_x)))
        params.append(("shadowy", format_number(style.shadow.offset_y)))

    if style.line_spacing is not None:
        params.append(("line_spacing", format_number(style.line_spacing)))

    return ResolvedStyle(params=tuple(params), font_size=font_size, mask_expr=mask_expr)
