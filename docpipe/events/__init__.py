from docpipe.events.bus import EventBus
from docpipe.events.events import (
    BatchCompleted,
    BatchFailed,
    BatchProgress,
    DocumentCompleted,
    Event,
    PipelineCompleted,
    PipelineFailed,
    StageCompleted,
    StageFailed,
    StageStarted,
)

__all__ = [
    "BatchCompleted",
    "BatchFailed",
    "BatchProgress",
    "DocumentCompleted",
    "Event",
    "EventBus",
    "PipelineCompleted",
    "PipelineFailed",
    "StageCompleted",
    "StageFailed",
    "StageStarted",
]
