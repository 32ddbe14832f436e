"""Application services."""

from .ingestion_service import LabelIngestionService, StepOutcome, StepResult
from .label_service import LabelService, WantlistSyncResult
from .match_cascade import MatchCascade
from .playback_service import EnqueueReason, EnqueueRejection, PlaybackService
from .weak_match_escalator import WeakMatchEscalator

__all__ = [
    "EnqueueReason",
    "EnqueueRejection",
    "LabelIngestionService",
    "LabelService",
    "MatchCascade",
    "PlaybackService",
    "StepOutcome",
    "StepResult",
    "WantlistSyncResult",
    "WeakMatchEscalator",
]
