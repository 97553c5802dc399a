"""Typed failures of a merge run.

Pipeline stages raise these; PipelineCoordinator turns each one into a single
failed PipelineResult (see `FailureKind`). Only PipelineBusyError escapes to
the caller, because a rejected invocation never becomes a run.
"""

from pathlib import Path
from typing import Optional
from .models import FailureKind


class PipelineError(Exception):
    """Base class for errors that end a pipeline run."""

    kind: FailureKind = FailureKind.INTERNAL

    def __init__(self, message: str, path: Optional[Path] = None):
        super().__init__(message)
        self.path = path


class PreconditionError(PipelineError):
    """Inputs are unusable before any work starts (e.g. fewer than 2 files)."""

    kind = FailureKind.PRECONDITION


class ToolMissingError(PipelineError):
    """A required executable (ffmpeg/ffprobe) could not be found."""

    kind = FailureKind.TOOL_MISSING


class ProbeError(PipelineError):
    """Duration probe failed and the probe policy is 'fail'."""

    kind = FailureKind.PROBE


class NormalizationError(PipelineError):
    """Re-encoding one input failed; `path` is the failing input."""

    kind = FailureKind.NORMALIZATION


class MergeError(PipelineError):
    kind = FailureKind.MERGE


class PipelineCancelled(PipelineError):
    kind = FailureKind.CANCELLED


class PipelineBusyError(RuntimeError):
    """Raised when a run is requested while another one is still active."""
