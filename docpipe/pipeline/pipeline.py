from abc import ABC, abstractmethod
from typing import ClassVar

from docpipe.pipeline.models import ProcessingContext


class PipelineStage(ABC):
    """One step of the per-document state machine.

    ``run`` returns the stage payload; the orchestrator records it as the
    stage's result. Raising marks the stage, and the run, as failed.
    """

    name: ClassVar[str]

    @abstractmethod
    async def run(self, context: ProcessingContext) -> object:
        raise NotImplementedError
