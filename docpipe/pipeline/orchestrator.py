import asyncio
import time
import uuid
from collections.abc import Sequence
from dataclasses import dataclass

from docpipe.classification.classifier import HybridClassifier
from docpipe.classification.models import ClassificationRules
from docpipe.config.settings import Settings
from docpipe.documents.file_loader import FileLoader
from docpipe.documents.models import DocumentDescriptor, FileInfo
from docpipe.events.bus import EventBus
from docpipe.events.events import (
    PipelineCompleted,
    PipelineFailed,
    StageCompleted,
    StageFailed,
    StageStarted,
)
from docpipe.intelligence.analyst import DocumentAnalyst
from docpipe.intelligence.client_base import BaseIntelligenceClient
from docpipe.intelligence.exceptions import IntelligenceConfigurationError
from docpipe.intelligence.factory import IntelligenceClientFactory
from docpipe.logging.logger import Log
from docpipe.pipeline.exceptions import StageTimeoutError
from docpipe.pipeline.models import (
    CLASSIFICATION,
    EXTRACTION,
    FORMATTING,
    OUTPUT,
    PROCESSING,
    VALIDATION,
    PipelineOutput,
    PipelineResult,
    ProcessingContext,
    ProcessingOptions,
    StageMetric,
    StageResult,
)
from docpipe.pipeline.pipeline import PipelineStage
from docpipe.pipeline.stages import (
    ClassificationStage,
    ExtractionStage,
    FormattingStage,
    OutputStage,
    ProcessingStage,
    ValidationStage,
)


@dataclass(frozen=True)
class PipelineMetrics:
    total: int = 0
    succeeded: int = 0
    failed: int = 0
    average_duration_ms: float = 0.0


class PipelineOrchestrator:
    """Drives one document through the stages in order.

    Every stage runs under its own timeout. The first failing stage ends the
    run; results of the stages before it are kept in the returned
    ``PipelineResult``. Nothing is retried here.
    """

    def __init__(
        self,
        *,
        stages: Sequence[PipelineStage],
        timeouts: dict[str, float],
        event_bus: EventBus | None = None,
        default_language: str = "english",
    ) -> None:
        self._stages = list(stages)
        self._timeouts = timeouts
        self._event_bus = event_bus or EventBus()
        self._default_language = default_language
        self._metrics = PipelineMetrics()
        self._metrics_lock = asyncio.Lock()

    @property
    def event_bus(self) -> EventBus:
        return self._event_bus

    @property
    def stage_names(self) -> list[str]:
        return [stage.name for stage in self._stages]

    def metrics(self) -> PipelineMetrics:
        return self._metrics

    async def process_file(
        self,
        document: DocumentDescriptor,
        options: ProcessingOptions | None = None,
    ) -> PipelineResult:
        """Run every stage for one document and return its result.

        Stage failures are returned as an unsuccessful result.

        Raises:
            IntelligenceConfigurationError: after recording the failed run, when
                the document intelligence client is misconfigured.
        """
        options = options or ProcessingOptions(language=self._default_language)
        context = ProcessingContext(
            processing_id=f"pipeline_{uuid.uuid4().hex}",
            document=document,
            options=options,
        )
        started = time.perf_counter()
        Log.info(f"[{context.processing_id}] Processing '{document.name}'")

        try:
            for stage in self._stages:
                await self._run_stage(stage, context)
        except IntelligenceConfigurationError as exc:
            await self._fail(context, started, exc)
            raise
        except Exception as exc:
            return await self._fail(context, started, exc)

        duration_ms = _elapsed_ms(started)
        await self._update_metrics(duration_ms, success=True)
        self._event_bus.publish(
            PipelineCompleted(
                processing_id=context.processing_id,
                document_name=document.name,
                duration_ms=duration_ms,
            )
        )
        Log.info(f"[{context.processing_id}] Completed '{document.name}' in {duration_ms:.0f}ms")
        output = context.payload(OUTPUT, PipelineOutput)
        return self._result(context, duration_ms, success=True, output=output)

    async def _run_stage(self, stage: PipelineStage, context: ProcessingContext) -> None:
        timeout = self._timeouts.get(stage.name)
        self._event_bus.publish(
            StageStarted(
                processing_id=context.processing_id,
                document_name=context.document.name,
                stage=stage.name,
            )
        )
        Log.debug(f"[{context.processing_id}] Stage {stage.name} started")
        started = time.perf_counter()
        try:
            payload = await asyncio.wait_for(stage.run(context), timeout=timeout)
        except asyncio.TimeoutError as exc:
            failure = StageTimeoutError(
                f"Stage '{stage.name}' timed out after {timeout}s", stage.name
            )
            self._record_failure(context, stage.name, started, failure)
            raise failure from exc
        except Exception as exc:
            self._record_failure(context, stage.name, started, exc)
            raise

        duration_ms = _elapsed_ms(started)
        context.stage_results[stage.name] = StageResult(
            stage=stage.name,
            success=True,
            duration_ms=duration_ms,
            payload=payload,
        )
        self._event_bus.publish(
            StageCompleted(
                processing_id=context.processing_id,
                document_name=context.document.name,
                stage=stage.name,
                duration_ms=duration_ms,
            )
        )
        Log.debug(f"[{context.processing_id}] Stage {stage.name} finished in {duration_ms:.0f}ms")

    def _record_failure(
        self,
        context: ProcessingContext,
        stage: str,
        started: float,
        exc: BaseException,
    ) -> None:
        duration_ms = _elapsed_ms(started)
        error = str(exc) or type(exc).__name__
        context.stage_results[stage] = StageResult(
            stage=stage,
            success=False,
            duration_ms=duration_ms,
            error=error,
        )
        self._event_bus.publish(
            StageFailed(
                processing_id=context.processing_id,
                document_name=context.document.name,
                stage=stage,
                error=error,
                duration_ms=duration_ms,
            )
        )
        Log.warning(f"[{context.processing_id}] Stage {stage} failed: {error}")

    async def _fail(
        self,
        context: ProcessingContext,
        started: float,
        exc: Exception,
    ) -> PipelineResult:
        duration_ms = _elapsed_ms(started)
        failed_stage = next(
            (name for name, result in context.stage_results.items() if not result.success),
            None,
        )
        error = str(exc) or type(exc).__name__
        await self._update_metrics(duration_ms, success=False)
        self._event_bus.publish(
            PipelineFailed(
                processing_id=context.processing_id,
                document_name=context.document.name,
                stage=failed_stage,
                error=error,
            )
        )
        Log.error(
            f"[{context.processing_id}] Failed '{context.document.name}' "
            f"at {failed_stage}: {error}"
        )
        return self._result(
            context,
            duration_ms,
            success=False,
            failed_stage=failed_stage,
            error=error,
        )

    def _result(
        self,
        context: ProcessingContext,
        duration_ms: float,
        *,
        success: bool,
        output: PipelineOutput | None = None,
        failed_stage: str | None = None,
        error: str | None = None,
    ) -> PipelineResult:
        return PipelineResult(
            processing_id=context.processing_id,
            success=success,
            file=FileInfo.of(context.document),
            language=context.options.language,
            duration_ms=duration_ms,
            stages=tuple(name for name, r in context.stage_results.items() if r.success),
            output=output,
            failed_stage=failed_stage,
            error=error,
            stage_results=dict(context.stage_results),
            warnings=tuple(context.warnings),
            stage_metrics={
                name: StageMetric.of(result) for name, result in context.stage_results.items()
            },
        )

    async def _update_metrics(self, duration_ms: float, *, success: bool) -> None:
        async with self._metrics_lock:
            current = self._metrics
            total = current.total + 1
            self._metrics = PipelineMetrics(
                total=total,
                succeeded=current.succeeded + (1 if success else 0),
                failed=current.failed + (0 if success else 1),
                average_duration_ms=(
                    current.average_duration_ms * current.total + duration_ms
                ) / total,
            )


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000


def stage_timeouts(settings: Settings) -> dict[str, float]:
    return {
        VALIDATION: settings.validation_timeout_seconds,
        EXTRACTION: settings.extraction_timeout_seconds,
        PROCESSING: settings.processing_timeout_seconds,
        CLASSIFICATION: settings.classification_timeout_seconds,
        FORMATTING: settings.formatting_timeout_seconds,
        OUTPUT: settings.output_timeout_seconds,
    }


def build_orchestrator(
    settings: Settings,
    *,
    client: BaseIntelligenceClient | None = None,
    event_bus: EventBus | None = None,
    file_loader: FileLoader | None = None,
) -> PipelineOrchestrator:
    """Build a PipelineOrchestrator with all six stages wired to one client."""
    file_loader = file_loader or FileLoader()
    analyst = DocumentAnalyst(client=client or IntelligenceClientFactory.create(settings))
    classifier = HybridClassifier(
        analyst=analyst,
        rules=ClassificationRules.from_settings(settings),
        file_loader=file_loader,
    )
    stages: list[PipelineStage] = [
        ValidationStage(settings.max_file_size_bytes),
        ExtractionStage(file_loader),
        ProcessingStage(analyst, classifier),
        ClassificationStage(classifier),
        FormattingStage(),
        OutputStage(settings.pipeline_version),
    ]
    return PipelineOrchestrator(
        stages=stages,
        timeouts=stage_timeouts(settings),
        event_bus=event_bus,
        default_language=settings.default_language,
    )
