"""
Estrategia de dump para PostgreSQL sin herramientas externas (sin pg_dump)
"""
import re
import time
from datetime import datetime
from typing import Iterable, List, Optional, TextIO

from ..base_strategy import DumpStrategy
from ...config import Config
from ...models import BackupOptions
from .data_generator import check_deadline
from .table_dumper import TableDumper
from .table_enumerator import TableEnumerator


def matches_pattern(table: str, pattern: str) -> bool:
    """Substring match, or a regex found anywhere in the table id."""
    if pattern in table:
        return True
    try:
        return re.search(pattern, table) is not None
    except re.error:
        return False


def filter_tables(tables: Iterable[str], options: BackupOptions) -> List[str]:
    """Include filter first, then exclude."""
    selected = list(tables)
    if options.tables_to_include:
        selected = [t for t in selected
                    if any(matches_pattern(t, p) for p in options.tables_to_include)]
    if options.tables_to_exclude:
        selected = [t for t in selected
                    if not any(matches_pattern(t, p) for p in options.tables_to_exclude)]
    return selected


class PostgreSQLDumpStrategy(DumpStrategy):
    """Genera el dump tabla por tabla directamente sobre el sink"""

    def __init__(self):
        super().__init__()
        self.enumerator = TableEnumerator(self.logger)
        self.table_dumper = TableDumper(self.logger)

    def write_dump(self, executor, database_name: str, sink: TextIO,
                   options: BackupOptions, deadline: Optional[float] = None) -> int:
        """
        Escribe encabezado, una sección por tabla y pie

        Raises:
            IntrospectionError: si no se pueden listar las tablas
            ProcessingTimeoutError: si se supera el deadline
        """
        start_time = time.time()

        sink.write(f"-- Database Backup: {database_name}\n")
        sink.write(f"-- Generated: {datetime.now().isoformat()}\n")
        sink.write(f"-- Generated by: {Config.CREATOR} {Config.VERSION}\n")
        sink.write("--\n\n")

        tables = filter_tables(self.enumerator.list_tables(executor), options)
        self.logger.info(f"Respaldando {len(tables)} tablas de {database_name}")

        for i, table in enumerate(tables, 1):
            check_deadline(deadline, database_name)
            self.logger.info(f"[TABLE] ({i}/{len(tables)}) {table}")
            self.table_dumper.dump(executor, table, sink, options, deadline)

        duration_ms = int((time.time() - start_time) * 1000)
        sink.write(f"-- Backup completed in {duration_ms}ms\n")
        sink.write(f"-- Tables backed up: {len(tables)}\n")
        return len(tables)
