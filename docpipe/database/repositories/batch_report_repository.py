import json

from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from docpipe.batch.models import BatchReport
from docpipe.batch.report import report_to_dict
from docpipe.database.connection import get_connection


class BatchReportRepository:
    """Database operations for the batch_reports table."""

    def ensure_schema(self) -> None:
        with get_connection() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS batch_reports (
                    id BIGSERIAL PRIMARY KEY,
                    batch_id TEXT NOT NULL UNIQUE,
                    total INTEGER NOT NULL,
                    succeeded INTEGER NOT NULL,
                    failed INTEGER NOT NULL,
                    dropped INTEGER NOT NULL,
                    cancelled BOOLEAN NOT NULL DEFAULT FALSE,
                    report JSONB NOT NULL,
                    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
                )
                """
            )
            conn.commit()

    def archive(self, report: BatchReport) -> int:
        """Store a finished report; archiving the same batch again replaces it."""
        statistics = report.statistics
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO batch_reports
                        (batch_id, total, succeeded, failed, dropped, cancelled, report)
                    VALUES (%s, %s, %s, %s, %s, %s, %s)
                    ON CONFLICT (batch_id) DO UPDATE
                    SET total = EXCLUDED.total,
                        succeeded = EXCLUDED.succeeded,
                        failed = EXCLUDED.failed,
                        dropped = EXCLUDED.dropped,
                        cancelled = EXCLUDED.cancelled,
                        report = EXCLUDED.report
                    RETURNING id
                    """,
                    (
                        report.batch_id,
                        statistics.total,
                        statistics.succeeded,
                        statistics.failed,
                        statistics.dropped,
                        report.cancelled,
                        Jsonb(report_to_dict(report), dumps=_dumps),
                    ),
                )
                row = cur.fetchone()
            conn.commit()
        if row is None:
            raise RuntimeError(f"Archiving batch {report.batch_id} returned no id")
        return int(row[0])

    def find_by_batch_id(self, batch_id: str) -> dict[str, object] | None:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT id, batch_id, total, succeeded, failed, dropped,
                           cancelled, report, created_at
                    FROM batch_reports
                    WHERE batch_id = %s
                    """,
                    (batch_id,),
                )
                return cur.fetchone()


def _dumps(value: object) -> str:
    return json.dumps(value, ensure_ascii=False, default=str)
