from typing import Optional, TextIO

from ...errors import DataExportError, IntrospectionError
from ...models import BackupOptions
from .data_generator import DataGenerator
from .schema_generator import SchemaGenerator


class TableDumper:
    """Schema block plus optional data block for one table.

    Introspection and export failures stay local to the table: they become a
    comment in the dump and the next table is processed.
    """

    def __init__(self, logger, schema: Optional[SchemaGenerator] = None,
                 data: Optional[DataGenerator] = None):
        self.logger = logger
        self.schema = schema or SchemaGenerator(logger)
        self.data = data or DataGenerator(logger)

    def dump(self, executor, table: str, sink: TextIO, options: BackupOptions,
             deadline: Optional[float] = None) -> int:
        sink.write(f"-- Table: {table}\n")

        try:
            columns = self.schema.get_columns(executor, table)
        except IntrospectionError as e:
            self.logger.error(f"[TABLE] {table}: {e}")
            sink.write(f"-- Error backing up table {table}: {e}\n\n")
            return 0

        if not columns:
            sink.write(f"-- Table {table} not found\n\n")
            return 0

        self.schema.generate(table, columns, sink)

        if not options.emits_data:
            return 0

        try:
            return self.data.generate(
                executor, table, [c['column_name'] for c in columns], sink, deadline,
                array_columns=[c['column_name'] for c in columns if c['data_type'] == 'ARRAY']
            )
        except DataExportError as e:
            self.logger.error(f"[DATA] {table}: {e}")
            sink.write(f"-- Error exporting data for {table}: {e}\n\n")
            return 0
