"""Domain events for the video merge pipeline.

Events represent state changes and notifications that flow through the EventBus,
decoupling the pipeline coordinator from the UI layer.

See `infrastructure/event_bus.py` for the pub/sub mechanism.
"""

from typing import List
from pathlib import Path
from pydantic import BaseModel
from .models import PipelineResult, PipelineStage, ProgressReport


class Event(BaseModel):
    """Base class for all domain events.

    Events are validated Pydantic models. They are not frozen by default.
    """

    pass


class PipelineStarted(Event):
    """Emitted once the entry guard passed and work begins."""

    inputs: List[Path]
    destination: Path


class StageChanged(Event):
    """Emitted on every state machine transition."""

    stage: PipelineStage


class ProgressUpdated(Event):
    """Emitted for every aggregated progress report (already monotonic)."""

    report: ProgressReport


class FileNormalized(Event):
    """Emitted after one input was re-encoded successfully."""

    index: int
    source: Path
    target: Path


class PipelineCompleted(Event):
    result: PipelineResult


class PipelineFailed(Event):
    result: PipelineResult
