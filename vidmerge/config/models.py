from typing import Optional
from pydantic import BaseModel, Field, field_validator

PROBE_FAILURE_POLICIES = ("degrade", "fail")

class GeneralConfig(BaseModel):
    debug: bool = False
    log_path: Optional[str] = None

class ToolsConfig(BaseModel):
    """Executable locations for the external tools (names are resolved on PATH)."""
    ffmpeg: str = "ffmpeg"
    ffprobe: str = "ffprobe"

class NormalizationProfile(BaseModel):
    """Target profile every input is re-encoded to before concatenation."""
    width: int = Field(default=1920, gt=0)
    height: int = Field(default=1080, gt=0)
    fps: int = Field(default=30, gt=0, le=240)
    video_codec: str = "libx264"
    preset: str = "medium"
    crf: int = Field(default=23, ge=0, le=51)
    pix_fmt: str = "yuv420p"
    audio_codec: str = "aac"
    audio_rate: int = Field(default=48000, gt=0)
    audio_channels: int = Field(default=2, ge=1, le=8)
    audio_bitrate: str = "192k"
    extension: str = ".mp4"

    @field_validator("width", "height")
    @classmethod
    def validate_even(cls, v: int) -> int:
        # yuv420p needs even dimensions
        if v % 2 != 0:
            raise ValueError(f"Dimension {v} must be even")
        return v

    @field_validator("extension")
    @classmethod
    def validate_extension(cls, v: str) -> str:
        v = v.strip().lower()
        if not v:
            raise ValueError("extension must not be empty")
        return v if v.startswith(".") else f".{v}"

class PipelineConfig(BaseModel):
    normalize_weight: float = Field(default=0.8, gt=0.0, lt=1.0)  # merge gets the rest
    poll_interval_s: float = Field(default=1.0, gt=0.0)
    probe_failure_policy: str = "degrade"
    keep_intermediates: bool = False
    workspace_dir: Optional[str] = None

    @field_validator("probe_failure_policy")
    @classmethod
    def validate_policy(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in PROBE_FAILURE_POLICIES:
            raise ValueError(f"Unsupported probe_failure_policy: {v}. Use one of {list(PROBE_FAILURE_POLICIES)}")
        return v

class AppConfig(BaseModel):
    general: GeneralConfig = Field(default_factory=GeneralConfig)
    tools: ToolsConfig = Field(default_factory=ToolsConfig)
    profile: NormalizationProfile = Field(default_factory=NormalizationProfile)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
