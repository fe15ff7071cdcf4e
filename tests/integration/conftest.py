import os
from collections.abc import Generator
from pathlib import Path

import psycopg
import pytest

from docpipe.config.settings import Settings
from docpipe.database.connection import build_conninfo, close_pool, get_connection, init_pool
from docpipe.documents.file_loader import FileLoader
from docpipe.events.bus import EventBus
from docpipe.intelligence.example_client_adapter import ExampleClientAdapter
from docpipe.pipeline.orchestrator import PipelineOrchestrator, build_orchestrator


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "docpipe_test")
    return Settings(intelligence_provider="example")


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def integration_pool(test_settings: Settings) -> Generator[None, None, None]:
    try:
        psycopg.connect(build_conninfo(test_settings), connect_timeout=3).close()
    except psycopg.Error as e:
        pytest.skip(f"PostgreSQL test DB not available: {e}. Set DB_* env to run these tests")
    init_pool(test_settings)
    try:
        yield
    finally:
        close_pool()


@pytest.fixture
def archived_batch_ids(integration_pool: None) -> Generator[list[str], None, None]:
    batch_ids: list[str] = []
    yield batch_ids
    if not batch_ids:
        return
    with get_connection() as conn:
        with conn.cursor() as cur:
            for batch_id in batch_ids:
                cur.execute("DELETE FROM batch_reports WHERE batch_id = %s", (batch_id,))
        conn.commit()


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def orchestrator(test_settings: Settings, event_bus: EventBus) -> PipelineOrchestrator:
    return build_orchestrator(test_settings, client=ExampleClientAdapter(), event_bus=event_bus)


@pytest.fixture
def documents_dir(tmp_path: Path, invoice_text: str, sample_pdf_bytes: bytes) -> Path:
    (tmp_path / "invoice.txt").write_text(invoice_text, encoding="utf-8")
    (tmp_path / "receipt.json").write_text(
        '{"receipt": "Payment received", "amount": 250}', encoding="utf-8"
    )
    (tmp_path / "scan.pdf").write_bytes(sample_pdf_bytes)
    return tmp_path


@pytest.fixture
def file_loader() -> FileLoader:
    return FileLoader()
