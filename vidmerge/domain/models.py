from enum import Enum
from pathlib import Path
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator
from vidmerge.config.models import NormalizationProfile

class PipelineStage(str, Enum):
    IDLE = "IDLE"
    PROBING = "PROBING"
    NORMALIZING = "NORMALIZING"
    MERGING = "MERGING"
    DONE = "DONE"

class FailureKind(str, Enum):
    PRECONDITION = "PRECONDITION"
    TOOL_MISSING = "TOOL_MISSING"
    PROBE = "PROBE"
    NORMALIZATION = "NORMALIZATION"
    MERGE = "MERGE"
    CANCELLED = "CANCELLED"  # cancel() during a run
    INTERNAL = "INTERNAL"

class MediaFile(BaseModel):
    """One input file. Frozen: probing returns a copy carrying the duration."""
    model_config = ConfigDict(frozen=True)

    path: Path
    duration: Optional[float] = None

    @property
    def is_probed(self) -> bool:
        return self.duration is not None

    def with_duration(self, duration: float) -> "MediaFile":
        return self.model_copy(update={"duration": duration})

class NormalizationJob(BaseModel):
    index: int
    source: MediaFile
    target_path: Path
    progress_path: Path
    profile: NormalizationProfile

class MergePlan(BaseModel):
    normalized_paths: List[Path]
    destination: Path
    source_count: int

    @model_validator(mode="after")
    def validate_count(self):
        if len(self.normalized_paths) != self.source_count:
            raise ValueError(
                f"Merge plan has {len(self.normalized_paths)} files, expected {self.source_count}"
            )
        return self

class ProgressReport(BaseModel):
    stage: PipelineStage
    progress: float = Field(ge=0.0, le=1.0)
    status: str = ""

    @property
    def percent(self) -> float:
        return self.progress * 100.0

class PipelineResult(BaseModel):
    success: bool
    output_path: Optional[Path] = None
    error_kind: Optional[FailureKind] = None
    reason: Optional[str] = None
    failed_path: Optional[Path] = None
    intermediates: List[Path] = Field(default_factory=list)

    @classmethod
    def ok(cls, output_path: Path, intermediates: Optional[List[Path]] = None) -> "PipelineResult":
        return cls(success=True, output_path=output_path, intermediates=intermediates or [])

    @classmethod
    def failed(cls, kind: FailureKind, reason: str, failed_path: Optional[Path] = None) -> "PipelineResult":
        return cls(success=False, error_kind=kind, reason=reason, failed_path=failed_path)
