import time
from typing import Iterable, List, Optional, TextIO

from ...config import Config
from ...errors import DataExportError, ProcessingTimeoutError
from .identifiers import quote_ident, quote_table
from .value_serializer import ValueSerializer


def batch_size_for(total_rows: int) -> int:
    """Smaller batches for bigger tables to bound memory per query."""
    for max_rows, size in Config.BATCH_SIZE_RULES:
        if total_rows <= max_rows:
            return size
    return Config.DEFAULT_BATCH_SIZE


def check_deadline(deadline: Optional[float], what: str):
    if deadline is not None and time.monotonic() > deadline:
        raise ProcessingTimeoutError(f"Processing timeout while backing up {what}")


class DataGenerator:
    PRIMARY_KEY_QUERY = """
        SELECT a.attname AS column_name
        FROM pg_index i
        JOIN pg_attribute a ON a.attrelid = i.indrelid AND a.attnum = ANY(i.indkey)
        WHERE i.indrelid = %s::regclass AND i.indisprimary
        ORDER BY array_position(i.indkey::int2[], a.attnum)
    """

    def __init__(self, logger, serializer: Optional[ValueSerializer] = None):
        self.logger = logger
        self.serializer = serializer or ValueSerializer(logger)

    def order_by(self, executor, table: str) -> str:
        """Primary key columns, or the physical row position when there is none."""
        try:
            rows = executor.query(self.PRIMARY_KEY_QUERY, (quote_table(table),))
        except Exception as e:
            raise DataExportError(f"Could not read primary key of {table}: {e}") from e
        if not rows:
            return "ctid"
        return ", ".join(quote_ident(r['column_name']) for r in rows)

    def count_rows(self, executor, table: str) -> int:
        try:
            rows = executor.query(f"SELECT COUNT(*) AS count FROM {quote_table(table)}")
        except Exception as e:
            raise DataExportError(f"Could not count rows of {table}: {e}") from e
        return int(rows[0]['count']) if rows else 0

    def fetch_batch(self, executor, table: str, limit: int, offset: int, order_by: str = "ctid"):
        try:
            return executor.query(
                f"SELECT * FROM {quote_table(table)} ORDER BY {order_by} LIMIT %s OFFSET %s",
                (limit, offset)
            )
        except Exception as e:
            raise DataExportError(
                f"Could not read rows {offset}-{offset + limit} of {table}: {e}"
            ) from e

    def generate(self, executor, table: str, columns: List[str], sink: TextIO,
                 deadline: Optional[float] = None, array_columns: Iterable[str] = ()) -> int:
        # COUNT and every batch see the same snapshot, so OFFSET pages neither
        # skip nor repeat rows while the table is being written to.
        with executor.snapshot():
            return self._generate(executor, table, columns, sink, deadline, frozenset(array_columns))

    def _generate(self, executor, table, columns, sink, deadline, array_columns) -> int:
        total_rows = self.count_rows(executor, table)
        if total_rows == 0:
            sink.write(f"-- Table {table} is empty\n\n")
            return 0

        batch_size = batch_size_for(total_rows)
        order_by = self.order_by(executor, table)
        sink.write(f"-- Data for {table} ({total_rows} rows)\n")
        self.logger.info(f"[DATA] {table}: {total_rows} rows in batches of {batch_size}")

        column_list = ", ".join(quote_ident(c) for c in columns)
        insert_head = f"INSERT INTO {quote_table(table)} ({column_list}) VALUES\n"
        report_progress = total_rows > Config.PROGRESS_ROW_THRESHOLD
        written = 0

        for batch_index, offset in enumerate(range(0, total_rows, batch_size)):
            check_deadline(deadline, table)
            if report_progress and batch_index % Config.PROGRESS_BATCH_INTERVAL == 0:
                progress = offset / total_rows * 100
                self.logger.info(f"[DATA]   Progress: {progress:.1f}% ({offset}/{total_rows} rows)")

            rows = self.fetch_batch(executor, table, batch_size, offset, order_by)
            if not rows:
                break

            sink.write(insert_head)
            sink.write(",\n".join(
                self.serializer.serialize_row(row, columns, table, array_columns) for row in rows
            ))
            sink.write(";\n\n")
            written += len(rows)

        if report_progress:
            self.logger.info(f"[DATA]   Progress: 100.0% ({written}/{total_rows} rows)")
        return written
