"""Pydantic models for the loop ASMR generator API."""
from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TriggerType(str, Enum):
    """ASMR trigger category driving both the visuals and the sound."""
    KINETIC_SAND = "kinetic_sand"
    SLIME_STRETCH = "slime_stretch"
    BUBBLE_POUR = "bubble_pour"
    SOAP_CUTTING = "soap_cutting"
    RAIN_GLASS = "rain_glass"


class PlatformName(str, Enum):
    """Supported publishing destinations."""
    TIKTOK = "tiktok"
    YOUTUBE = "youtube"


class PostStatus(str, Enum):
    """Outcome of a single platform publish attempt."""
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


class Interpretation(BaseModel):
    """Structured generation plan derived from a free-text prompt."""
    model_config = ConfigDict(frozen=True)

    trigger: TriggerType
    title: str
    visual_mood: str
    motion_description: str
    palette: Tuple[str, ...] = Field(min_length=2, description="Ordered #rrggbb colours")
    duration_seconds: int = Field(gt=0)
    fps: int = Field(gt=0)
    motion_cycles: int = Field(1, ge=1, description="Motion repetitions per loop")
    seed: int = Field(0, ge=0, description="Seed for all procedural randomness")

    @field_validator("palette")
    @classmethod
    def _check_palette(cls, palette: Tuple[str, ...]) -> Tuple[str, ...]:
        for colour in palette:
            if len(colour) != 7 or not colour.startswith("#"):
                raise ValueError(f"Palette colour must be #rrggbb, got {colour!r}")
            int(colour[1:], 16)
        return palette

    @property
    def frame_count(self) -> int:
        """Exact number of frames every stage agrees on."""
        return self.duration_seconds * self.fps


class PlatformPostResult(BaseModel):
    """Result of publishing to one platform."""
    platform: PlatformName
    status: PostStatus
    detail: str


class GenerateRequest(BaseModel):
    """Request model for loop generation."""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "prompt": "Crunchy kinetic sand ASMR"
            }
        }
    )

    prompt: Optional[str] = Field(None, description="Short description of the ASMR loop")


class GenerationResult(BaseModel):
    """Complete response for one generation run."""
    prompt: str
    interpretation: Interpretation
    video_url: str
    audio_url: str
    cover_url: str
    duration_seconds: int
    fps: int
    tiktok_caption: str
    youtube_caption: str
    posts: List[PlatformPostResult]

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "prompt": "Crunchy kinetic sand ASMR",
                "video_url": "/generated/3f2c.../loop.mp4",
                "audio_url": "/generated/3f2c.../loop.wav",
                "cover_url": "/generated/3f2c.../cover.jpg",
                "duration_seconds": 8,
                "fps": 30,
                "posts": [
                    {"platform": "tiktok", "status": "skipped", "detail": "TikTok credentials not configured"}
                ],
            }
        }
    )


class ErrorResponse(BaseModel):
    """Error body returned for validation and pipeline failures."""
    error: str


class HealthResponse(BaseModel):
    """Health check response."""
    status: str = "ok"
