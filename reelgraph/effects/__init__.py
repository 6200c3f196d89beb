"""
Pan/zoom and chromakey/picture-in-picture effects.

Usage:
    from reelgraph.effects import add_picture_in_picture, PictureInPictureOptions

    timeline = add_picture_in_picture(
        timeline,
        "webcam.mp4",
        PictureInPictureOptions(position="bottom-right", scale=0.3, shadow=True),
    )
"""

from .pan_zoom import apply_ken_burns, pan, suggest_pan_zoom, zoom_in, zoom_out
from .picture_in_picture import (
    AudioMix,
    PictureInPictureOptions,
    add_green_screen,
    add_picture_in_picture,
)

__all__ = [
    "apply_ken_burns",
    "pan",
    "suggest_pan_zoom",
    "zoom_in",
    "zoom_out",
    "AudioMix",
    "PictureInPictureOptions",
    "add_green_screen",
    "add_picture_in_picture",
]
