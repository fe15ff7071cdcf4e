import argparse
import asyncio
import sys
from pathlib import Path

from docpipe.batch.report import report_to_json
from docpipe.batch.scheduler import BatchScheduler
from docpipe.config.settings import Settings
from docpipe.database.connection import close_pool, init_pool
from docpipe.database.repositories.batch_report_repository import BatchReportRepository
from docpipe.documents.file_loader import FileLoader
from docpipe.events.bus import EventBus
from docpipe.intelligence.analyst import DocumentAnalyst
from docpipe.intelligence.exceptions import IntelligenceConfigurationError
from docpipe.intelligence.factory import IntelligenceClientFactory
from docpipe.logging.logger import Log
from docpipe.pipeline.models import OUTPUT_FORMATS, ProcessingOptions
from docpipe.pipeline.orchestrator import build_orchestrator


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docpipe",
        description="Classify and analyze documents, printing a JSON batch report.",
    )
    parser.add_argument("paths", nargs="+", type=Path, help="Files or directories to process")
    parser.add_argument("--language", help="Answer language (default: settings)")
    parser.add_argument("--format", choices=sorted(OUTPUT_FORMATS), default="structured")
    parser.add_argument("--no-classification", action="store_true")
    parser.add_argument("--no-summary", action="store_true")
    parser.add_argument("--no-extraction", action="store_true")
    parser.add_argument("--no-ocr", action="store_true")
    parser.add_argument("--no-naming", action="store_true")
    parser.add_argument("--no-insight", action="store_true", help="Skip collective insight")
    parser.add_argument("--force-refresh", action="store_true", help="Ignore cached classifications")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Entry point: paths -> descriptors -> one batch -> JSON report on stdout."""
    args = build_parser().parse_args(argv)
    settings = Settings()
    Log.configure(settings.log_level)

    try:
        documents = FileLoader().collect(args.paths)
    except FileNotFoundError as exc:
        Log.error(str(exc))
        return 2

    try:
        client = IntelligenceClientFactory.create(settings)
    except (IntelligenceConfigurationError, ValueError) as exc:
        Log.error(f"Cannot create intelligence client: {exc}")
        return 2

    event_bus = EventBus()
    scheduler = BatchScheduler.from_settings(
        settings,
        orchestrator=build_orchestrator(settings, client=client, event_bus=event_bus),
        analyst=DocumentAnalyst(client=client),
        event_bus=event_bus,
    )
    options = ProcessingOptions(
        language=args.language or settings.default_language,
        enable_classification=not args.no_classification,
        enable_summary=not args.no_summary,
        enable_data_extraction=not args.no_extraction,
        enable_ocr=not args.no_ocr,
        enable_naming=not args.no_naming,
        output_format=args.format,
        force_refresh=args.force_refresh,
    )

    try:
        report = asyncio.run(
            scheduler.process_batch(documents, options, collective_insight=not args.no_insight)
        )
    except IntelligenceConfigurationError:
        return 2

    sys.stdout.write(report_to_json(report) + "\n")

    if settings.archive_reports:
        init_pool(settings)
        try:
            repository = BatchReportRepository()
            repository.ensure_schema()
            report_id = repository.archive(report)
            Log.info(f"Archived batch {report.batch_id} as report {report_id}")
        finally:
            close_pool()

    return 0 if report.statistics.failed == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
