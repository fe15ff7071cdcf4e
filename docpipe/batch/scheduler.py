import asyncio
import uuid
from collections.abc import Sequence

from docpipe.batch.exceptions import BatchInProgressError
from docpipe.batch.models import (
    BatchJob,
    BatchReport,
    BatchStatistics,
    BatchStatus,
    DocumentOutcome,
    DroppedDocument,
)
from docpipe.batch.statistics import StatisticsAccumulator
from docpipe.config.settings import Settings
from docpipe.documents.media_types import is_supported
from docpipe.documents.models import DocumentDescriptor
from docpipe.events.bus import EventBus
from docpipe.events.events import BatchCompleted, BatchFailed, BatchProgress, DocumentCompleted
from docpipe.intelligence.analyst import DocumentAnalyst
from docpipe.intelligence.exceptions import IntelligenceConfigurationError
from docpipe.intelligence.models import CollectiveInsight
from docpipe.logging.logger import Log
from docpipe.pipeline.models import VALIDATION, ProcessingOptions
from docpipe.pipeline.orchestrator import PipelineOrchestrator


class BatchScheduler:
    """Runs many documents through the pipeline in fixed-size batches.

    Batches run one after another; inside a batch at most ``max_concurrency``
    documents are in flight. One document failing never affects its siblings.
    A misconfigured intelligence client aborts the whole batch.
    """

    def __init__(
        self,
        *,
        orchestrator: PipelineOrchestrator,
        analyst: DocumentAnalyst | None = None,
        batch_size: int = 10,
        max_concurrency: int = 3,
        max_file_size_bytes: int = 10 * 1024 * 1024,
        retry_attempts: int = 0,
        retry_backoff_seconds: float = 1.0,
        event_bus: EventBus | None = None,
    ) -> None:
        if batch_size < 1 or max_concurrency < 1:
            raise ValueError("batch_size and max_concurrency must be at least 1")
        self._orchestrator = orchestrator
        self._analyst = analyst
        self._batch_size = batch_size
        self._max_concurrency = max_concurrency
        self._max_file_size_bytes = max_file_size_bytes
        self._retry_attempts = retry_attempts
        self._retry_backoff_seconds = retry_backoff_seconds
        self._event_bus = event_bus or orchestrator.event_bus
        self._is_processing = False
        self._cancel_requested = False
        self._job: BatchJob | None = None
        self._statistics: StatisticsAccumulator | None = None
        self._in_flight: set[asyncio.Task[DocumentOutcome]] = set()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        orchestrator: PipelineOrchestrator,
        analyst: DocumentAnalyst | None = None,
        event_bus: EventBus | None = None,
    ) -> "BatchScheduler":
        return cls(
            orchestrator=orchestrator,
            analyst=analyst,
            batch_size=settings.batch_size,
            max_concurrency=settings.max_concurrent_documents,
            max_file_size_bytes=settings.batch_max_file_size_bytes,
            retry_attempts=settings.retry_attempts,
            retry_backoff_seconds=settings.retry_backoff_seconds,
            event_bus=event_bus,
        )

    @property
    def is_processing(self) -> bool:
        return self._is_processing

    async def process_batch(
        self,
        documents: Sequence[DocumentDescriptor],
        options: ProcessingOptions | None = None,
        *,
        collective_insight: bool = True,
    ) -> BatchReport:
        """Process every document and return the batch report.

        Raises:
            BatchInProgressError: if this scheduler is already running a batch.
            IntelligenceConfigurationError: if the client cannot be used at all.
        """
        if self._is_processing:
            raise BatchInProgressError("A batch is already being processed")
        self._is_processing = True
        self._cancel_requested = False

        job = BatchJob(
            batch_id=f"batch_{uuid.uuid4().hex[:12]}",
            documents=list(documents),
            options=options or ProcessingOptions(),
        )
        self._job = job
        try:
            return await self._run(job, collective_insight)
        except IntelligenceConfigurationError as exc:
            self._event_bus.publish(BatchFailed(batch_id=job.batch_id, error=str(exc)))
            Log.error(f"Batch {job.batch_id} aborted: {exc}")
            raise
        finally:
            self._is_processing = False
            self._in_flight.clear()

    def cancel(self, *, abort_in_flight: bool = False) -> None:
        """Stop starting new documents.

        With ``abort_in_flight`` the documents already running are cancelled too;
        otherwise they are left to finish.
        """
        if not self._is_processing:
            return
        self._cancel_requested = True
        batch_id = self._job.batch_id if self._job else ""
        Log.warning(f"Batch {batch_id} cancellation requested (abort_in_flight={abort_in_flight})")
        self._event_bus.publish(BatchFailed(batch_id=batch_id, error="Batch processing cancelled"))
        if abort_in_flight:
            for task in list(self._in_flight):
                task.cancel()

    def status(self) -> BatchStatus:
        job = self._job
        return BatchStatus(
            is_processing=self._is_processing,
            batch_id=job.batch_id if job else None,
            current_batch=job.current_batch if job else 0,
            batch_count=job.batch_count if job else 0,
            statistics=self._statistics.snapshot() if self._statistics else BatchStatistics(),
        )

    async def _run(self, job: BatchJob, collective_insight: bool) -> BatchReport:
        self._filter(job)
        statistics = StatisticsAccumulator(total=len(job.documents), dropped=len(job.dropped))
        self._statistics = statistics
        batches = [
            job.accepted[start:start + self._batch_size]
            for start in range(0, len(job.accepted), self._batch_size)
        ]
        job.batch_count = len(batches)
        Log.info(
            f"Batch {job.batch_id}: {len(job.accepted)} documents in {len(batches)} batches, "
            f"{len(job.dropped)} dropped"
        )

        for index, batch in enumerate(batches, start=1):
            if self._cancel_requested:
                for document in batch:
                    await self._record(job, statistics, DocumentOutcome.cancelled(document))
                continue
            job.current_batch = index
            await self._run_batch(job, statistics, batch)
            snapshot = statistics.snapshot()
            self._event_bus.publish(
                BatchProgress(
                    batch_id=job.batch_id,
                    processed=snapshot.processed,
                    total=len(job.accepted),
                    batch_index=index,
                    batch_count=len(batches),
                )
            )
            Log.info(
                f"Batch {job.batch_id} progress: {snapshot.processed}/{len(job.accepted)} "
                f"(batch {index}/{len(batches)})"
            )

        insight = None
        if collective_insight and not self._cancel_requested:
            insight = await self._collective_insight(job)
        final = await statistics.finish()
        self._event_bus.publish(
            BatchCompleted(
                batch_id=job.batch_id,
                total=final.total,
                succeeded=final.succeeded,
                failed=final.failed,
                dropped=final.dropped,
                cancelled=self._cancel_requested,
            )
        )
        Log.info(
            f"Batch {job.batch_id} finished: {final.succeeded} succeeded, "
            f"{final.failed} failed, {final.dropped} dropped"
        )
        return BatchReport(
            batch_id=job.batch_id,
            statistics=final,
            results=tuple(job.results),
            dropped=tuple(job.dropped),
            collective_insight=insight,
            cancelled=self._cancel_requested,
        )

    def _filter(self, job: BatchJob) -> None:
        for document in job.documents:
            if document.size > self._max_file_size_bytes:
                reason = f"File exceeds {self._max_file_size_bytes} bytes"
            elif not is_supported(document.media_type):
                reason = f"Unsupported media type '{document.media_type}'"
            else:
                job.accepted.append(document)
                continue
            Log.warning(f"Batch {job.batch_id}: dropping '{document.name}': {reason}")
            job.dropped.append(DroppedDocument(document_name=document.name, reason=reason))

    async def _run_batch(
        self,
        job: BatchJob,
        statistics: StatisticsAccumulator,
        batch: list[DocumentDescriptor],
    ) -> None:
        semaphore = asyncio.Semaphore(self._max_concurrency)
        tasks = [
            asyncio.create_task(self._run_document(job, statistics, document, semaphore))
            for document in batch
        ]
        self._in_flight.update(tasks)
        try:
            outcomes = await asyncio.gather(*tasks, return_exceptions=True)
        finally:
            self._in_flight.difference_update(tasks)

        fatal: BaseException | None = None
        for document, outcome in zip(batch, outcomes):
            if isinstance(outcome, asyncio.CancelledError):
                await self._record(job, statistics, DocumentOutcome.cancelled(document))
            elif isinstance(outcome, IntelligenceConfigurationError):
                fatal = fatal or outcome
            elif isinstance(outcome, BaseException):
                raise outcome
        if fatal is not None:
            raise fatal

    async def _run_document(
        self,
        job: BatchJob,
        statistics: StatisticsAccumulator,
        document: DocumentDescriptor,
        semaphore: asyncio.Semaphore,
    ) -> DocumentOutcome:
        async with semaphore:
            if self._cancel_requested:
                outcome = DocumentOutcome.cancelled(document)
            else:
                outcome = await self._process_with_retry(document, job.options)
        await self._record(job, statistics, outcome)
        return outcome

    async def _process_with_retry(
        self,
        document: DocumentDescriptor,
        options: ProcessingOptions,
    ) -> DocumentOutcome:
        attempt = 0
        while True:
            result = await self._orchestrator.process_file(document, options)
            retryable = (
                not result.success
                and result.failed_stage != VALIDATION
                and attempt < self._retry_attempts
                and not self._cancel_requested
            )
            if not retryable:
                return DocumentOutcome.from_result(result, attempts=attempt + 1)
            delay = self._retry_backoff_seconds * 2 ** attempt
            Log.warning(
                f"Retrying '{document.name}' in {delay:.1f}s after failure at "
                f"{result.failed_stage}: {result.error}"
            )
            await asyncio.sleep(delay)
            attempt += 1

    async def _record(
        self,
        job: BatchJob,
        statistics: StatisticsAccumulator,
        outcome: DocumentOutcome,
    ) -> None:
        await statistics.record(outcome)
        job.results.append(outcome)
        self._event_bus.publish(
            DocumentCompleted(
                batch_id=job.batch_id,
                document_name=outcome.document_name,
                status=outcome.status,
            )
        )

    async def _collective_insight(self, job: BatchJob) -> CollectiveInsight | None:
        successful = [
            outcome.result.output.formatted
            for outcome in job.results
            if outcome.succeeded and outcome.result and outcome.result.output
        ]
        if len(successful) <= 1 or self._analyst is None:
            return None
        Log.info(f"Batch {job.batch_id}: requesting collective insight for {len(successful)} documents")
        return await self._analyst.collective_insight(
            summaries=[
                f"{formatted.file.name}: {formatted.analysis.summary or 'No summary'}"
                for formatted in successful
            ],
            classifications=[
                f"{formatted.file.name}: {formatted.classification.category}"
                for formatted in successful
            ],
            language=job.options.language,
        )
