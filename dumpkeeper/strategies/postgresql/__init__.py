"""
Dump de PostgreSQL generado desde el catálogo del servidor
"""
from .connection import PostgresExecutor
from .data_generator import DataGenerator, batch_size_for
from .postgresql_strategy import PostgreSQLDumpStrategy, filter_tables, matches_pattern
from .schema_generator import SchemaGenerator
from .table_dumper import TableDumper
from .table_enumerator import TableEnumerator
from .value_serializer import ValueSerializer

__all__ = [
    'PostgresExecutor',
    'DataGenerator',
    'batch_size_for',
    'PostgreSQLDumpStrategy',
    'filter_tables',
    'matches_pattern',
    'SchemaGenerator',
    'TableDumper',
    'TableEnumerator',
    'ValueSerializer',
]
