"""
Pydantic models for subtitle/caption handling.

CaptionEntry does not enforce ``end_time > start_time`` on construction:
bad timings are reported by ``validate_captions`` rather than rejected, so
a caller can load, inspect and fix a broken subtitle file.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from reelgraph.models.layer_models import TextStyle


class CaptionStyle(BaseModel):
    """Inline style carried by SRT tags (<b>, <i>, <u>, <font>)."""

    model_config = ConfigDict(frozen=True)

    bold: bool = False
    italic: bool = False
    underline: bool = False
    color: str | None = None
    font_name: str | None = None

    @property
    def is_empty(self) -> bool:
        return not (self.bold or self.italic or self.underline or self.color or self.font_name)


class CaptionPosition(BaseModel):
    model_config = ConfigDict(frozen=True)

    alignment: str = Field(default="center", description="left, center, right")
    vertical: str = Field(default="bottom", description="top, middle, bottom")


class CaptionEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    index: int = Field(default=0, description="1-based; re-derived on parse/generate")
    start_time: float = Field(description="Seconds")
    end_time: float = Field(description="Seconds")
    text: str = ""
    style: CaptionStyle | None = None
    position: CaptionPosition | None = None

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time


class WordTiming(BaseModel):
    model_config = ConfigDict(frozen=True)

    word: str
    start_time: float
    end_time: float


class SRTParseOptions(BaseModel):
    strict: bool = Field(default=False, description="Raise on the first malformed block")
    parse_styles: bool = Field(default=True, description="Extract inline style tags")
    preserve_empty: bool = Field(default=False, description="Keep entries with no text")


class SRTGenerateOptions(BaseModel):
    include_styles: bool = True
    max_line_length: int | None = Field(default=None, gt=0)
    line_ending: str = "\r\n"
    add_bom: bool = False
    use_milliseconds: bool = True


class ValidationStats(BaseModel):
    entry_count: int = 0
    total_duration: float = 0.0
    average_duration: float = 0.0
    overlap_count: int = 0
    gap_count: int = 0


class ValidationReport(BaseModel):
    valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    stats: ValidationStats = Field(default_factory=ValidationStats)


class CaptionTrack(BaseModel):
    """One independent caption sequence (e.g. one language)."""

    model_config = ConfigDict(frozen=True)

    name: str
    language: str | None = None
    entries: tuple[CaptionEntry, ...] = ()
    style: TextStyle | None = None
    vertical: str | None = Field(
        default=None, description="Override vertical placement for the whole track"
    )
