"""
Pydantic models for encode settings and render targets.

This module defines:
- Render presets and quality settings
- Output options consumed by the command emitter
- Fixed resolution and platform tables for batch compiles
"""

from __future__ import annotations

from enum import Enum
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, Field


# =============================================================================
# ENUMS
# =============================================================================


class VideoCodec(str, Enum):
    """Supported video codecs."""

    H264 = "h264"  # libx264 (CPU) or h264_nvenc (GPU)
    H265 = "h265"  # libx265 (CPU) or hevc_nvenc (GPU)
    VP9 = "vp9"  # libvpx-vp9 (CPU only)


class AudioCodec(str, Enum):
    """Supported audio codecs."""

    AAC = "aac"
    MP3 = "mp3"
    OPUS = "opus"


class RenderQuality(str, Enum):
    """Preset quality levels."""

    DRAFT = "draft"  # Fast preview, lower quality
    STANDARD = "standard"  # Balanced quality/speed
    HIGH = "high"  # High quality, slower
    MAXIMUM = "maximum"  # Best quality, slowest


# =============================================================================
# RENDER PRESETS
# =============================================================================


class VideoSettings(BaseModel):
    """Video encoding settings."""

    codec: VideoCodec = Field(default=VideoCodec.H264, description="Video codec")
    bitrate: str | None = Field(
        default=None, description="Target bitrate e.g. '10M', '5000k'"
    )
    crf: int | None = Field(
        default=23,
        ge=0,
        le=51,
        description="Constant Rate Factor (0=lossless, 23=default, 51=worst)",
    )
    preset: str = Field(
        default="medium",
        description="Encoding preset: ultrafast, superfast, veryfast, faster, fast, medium, slow, slower, veryslow",
    )
    profile: str | None = Field(default=None, description="e.g. 'high', 'main'")
    level: str | None = Field(default=None, description="e.g. '4.1'")
    pixel_format: str = Field(default="yuv420p", description="Pixel format")
    keyframe_interval: int | None = Field(default=None, gt=0, description="GOP size")
    tune: str | None = Field(default=None, description="e.g. 'film', 'animation'")


class AudioSettings(BaseModel):
    """Audio encoding settings."""

    codec: AudioCodec = Field(default=AudioCodec.AAC, description="Audio codec")
    bitrate: str = Field(default="192k", description="Audio bitrate")
    sample_rate: int = Field(default=48000, description="Sample rate in Hz")
    channels: int = Field(default=2, description="Number of audio channels")


class RenderPreset(BaseModel):
    """Complete render preset configuration."""

    name: str = Field(description="Preset name")
    quality: RenderQuality = Field(
        default=RenderQuality.STANDARD, description="Quality level"
    )
    video: VideoSettings = Field(default_factory=VideoSettings)
    audio: AudioSettings = Field(default_factory=AudioSettings)
    use_gpu: bool = Field(
        default=False, description="Use GPU encoders if available"
    )

    @classmethod
    def draft_preview(cls) -> RenderPreset:
        """Quick preview preset - fast encoding, lower quality."""
        return cls(
            name="Draft Preview",
            quality=RenderQuality.DRAFT,
            video=VideoSettings(crf=28, preset="veryfast"),
            audio=AudioSettings(bitrate="128k"),
        )

    @classmethod
    def standard_export(cls) -> RenderPreset:
        """Standard quality export preset."""
        return cls(
            name="Standard Export",
            quality=RenderQuality.STANDARD,
            video=VideoSettings(crf=23, preset="medium"),
            audio=AudioSettings(bitrate="192k"),
        )

    @classmethod
    def high_quality_export(cls) -> RenderPreset:
        """High quality export preset with GPU encoding."""
        return cls(
            name="High Quality Export",
            quality=RenderQuality.HIGH,
            video=VideoSettings(crf=18, preset="slow", profile="high"),
            audio=AudioSettings(bitrate="320k"),
            use_gpu=True,
        )

    @classmethod
    def maximum_quality_export(cls) -> RenderPreset:
        """Maximum quality export preset."""
        return cls(
            name="Maximum Quality Export",
            quality=RenderQuality.MAXIMUM,
            video=VideoSettings(crf=15, preset="veryslow", profile="high"),
            audio=AudioSettings(bitrate="320k", sample_rate=48000),
        )

    @classmethod
    def for_platform(cls, platform: str) -> RenderPreset:
        """Encode settings tuned for a delivery platform (unknown = standard)."""
        profile = PLATFORM_PROFILES.get(platform.lower())
        if profile is None:
            return cls.standard_export()
        return cls(
            name=f"{profile.name} Export",
            quality=RenderQuality.STANDARD,
            video=VideoSettings(
                crf=profile.crf,
                preset="medium",
                profile="high",
                bitrate=profile.max_bitrate,
                keyframe_interval=profile.keyframe_interval,
            ),
            audio=AudioSettings(bitrate=profile.audio_bitrate),
        )


class OutputOptions(BaseModel):
    """Global options for one emitted command."""

    preset: RenderPreset = Field(default_factory=RenderPreset.standard_export)
    overwrite: bool = Field(default=True, description="-y (True) or -n (False)")
    hardware_acceleration: str | None = Field(
        default=None, description="Decoder acceleration, e.g. 'cuda', 'auto'"
    )
    extra_args: list[str] = Field(
        default_factory=list, description="Appended before the output path"
    )
    ffmpeg_bin: str | None = Field(
        default=None, description="Program name (None = configured default)"
    )


# =============================================================================
# RESOLUTION & PLATFORM TABLES
# =============================================================================


class Resolution(BaseModel):
    name: str
    width: int = Field(gt=0)
    height: int = Field(gt=0)
    aspect_ratio: str
    platforms: tuple[str, ...] = ()


class PlatformProfile(BaseModel):
    name: str
    resolutions: tuple[str, ...]
    frame_rate: float = 30.0
    crf: int = Field(default=23, ge=0, le=51)
    max_bitrate: str | None = None
    audio_bitrate: str = "192k"
    keyframe_interval: int | None = None
    max_duration: float | None = None


def _resolution(name: str, width: int, height: int, aspect: str, *platforms: str) -> Resolution:
    return Resolution(
        name=name, width=width, height=height, aspect_ratio=aspect, platforms=platforms
    )


STANDARD_RESOLUTIONS = MappingProxyType(
    {
        "8k": _resolution("8K", 7680, 4320, "16:9", "youtube", "professional"),
        "4k": _resolution("4K", 3840, 2160, "16:9", "youtube", "professional"),
        "1440p": _resolution("1440p", 2560, 1440, "16:9", "youtube", "gaming"),
        "1080p": _resolution("1080p", 1920, 1080, "16:9", "youtube", "facebook", "twitter", "linkedin"),
        "720p": _resolution("720p", 1280, 720, "16:9", "youtube", "facebook", "web"),
        "480p": _resolution("480p", 854, 480, "16:9", "web", "mobile"),
        "360p": _resolution("360p", 640, 360, "16:9", "web", "mobile"),
        "instagram-square": _resolution("Instagram Square", 1080, 1080, "1:1", "instagram"),
        "instagram-story": _resolution("Instagram Story", 1080, 1920, "9:16", "instagram"),
        "tiktok": _resolution("TikTok", 1080, 1920, "9:16", "tiktok"),
        "youtube-shorts": _resolution("YouTube Shorts", 1080, 1920, "9:16", "youtube"),
        "twitter": _resolution("Twitter", 1280, 720, "16:9", "twitter"),
    }
)

PLATFORM_PROFILES = MappingProxyType(
    {
        "youtube": PlatformProfile(
            name="YouTube",
            resolutions=("4k", "1440p", "1080p", "720p"),
            crf=20,
            audio_bitrate="384k",
            keyframe_interval=60,
            max_duration=12 * 60 * 60,
        ),
        "instagram": PlatformProfile(
            name="Instagram",
            resolutions=("instagram-square", "instagram-story", "1080p"),
            max_bitrate="30M",
            keyframe_interval=60,
            max_duration=10 * 60,
        ),
        "tiktok": PlatformProfile(
            name="TikTok",
            resolutions=("tiktok",),
            max_bitrate="10M",
            keyframe_interval=60,
            max_duration=10 * 60,
        ),
        "facebook": PlatformProfile(
            name="Facebook",
            resolutions=("1080p", "720p"),
            max_duration=4 * 60 * 60,
        ),
        "twitter": PlatformProfile(
            name="Twitter",
            resolutions=("twitter", "1080p"),
            max_bitrate="25M",
            max_duration=140,
        ),
    }
)


class RenderTarget(BaseModel):
    """One output of a batch compile: a frame size plus encode options."""

    name: str
    width: int = Field(gt=0)
    height: int = Field(gt=0)
    output_path: str
    frame_rate: float | None = Field(default=None, gt=0)
    options: OutputOptions = Field(default_factory=OutputOptions)

    @classmethod
    def from_resolution(
        cls, key: str, output_path: str, options: OutputOptions | None = None
    ) -> RenderTarget:
        resolution = STANDARD_RESOLUTIONS[key.lower()]
        return cls(
            name=key.lower(),
            width=resolution.width,
            height=resolution.height,
            output_path=output_path,
            options=options or OutputOptions(),
        )

    @classmethod
    def for_platform(cls, platform: str, output_dir: str) -> list[RenderTarget]:
        """One target per resolution the platform accepts."""
        profile = PLATFORM_PROFILES[platform.lower()]
        options = OutputOptions(preset=RenderPreset.for_platform(platform))
        targets: list[RenderTarget] = []
        for key in profile.resolutions:
            resolution = STANDARD_RESOLUTIONS[key]
            targets.append(
                cls(
                    name=f"{platform.lower()}-{key}",
                    width=resolution.width,
                    height=resolution.height,
                    frame_rate=profile.frame_rate,
                    output_path=f"{output_dir.rstrip('/')}/{platform.lower()}_{key}.mp4",
                    options=options,
                )
            )
        return targets

    def cache_key_data(self) -> dict[str, Any]:
        return self.model_dump(mode="json")
