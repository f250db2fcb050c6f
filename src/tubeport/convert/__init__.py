"""Conversion pipeline: extractor, platform clients and orchestrator."""

from tubeport.convert.errors import ConversionError
from tubeport.convert.models import ConversionRun, RunState, TrackStatus
from tubeport.convert.orchestrator import ConversionOrchestrator
from tubeport.convert.progress import ProgressReporter, ProgressSnapshot

__all__ = [
    "ConversionError",
    "ConversionOrchestrator",
    "ConversionRun",
    "ProgressReporter",
    "ProgressSnapshot",
    "RunState",
    "TrackStatus",
]
