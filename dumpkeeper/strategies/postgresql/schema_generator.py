from typing import Dict, List, TextIO

from ...errors import IntrospectionError
from .identifiers import quote_ident, quote_table, split_table_name


LENGTH_TYPES = ('character varying', 'character', 'varchar', 'char', 'bit', 'bit varying')
PRECISION_TYPES = ('numeric', 'decimal')


def udt_type(schema, name: str) -> str:
    """Type name as written in DDL; built-in types stay unqualified."""
    if not schema or schema == 'pg_catalog':
        return name
    return f"{quote_ident(schema)}.{quote_ident(name)}"


class SchemaGenerator:
    COLUMNS_QUERY = """
        SELECT
            column_name,
            data_type,
            is_nullable,
            column_default,
            character_maximum_length,
            numeric_precision,
            numeric_scale,
            udt_schema,
            udt_name
        FROM information_schema.columns
        WHERE table_schema = %s AND table_name = %s
        ORDER BY ordinal_position
    """

    def __init__(self, logger):
        self.logger = logger

    def get_columns(self, executor, table: str) -> List[Dict]:
        schema, name = split_table_name(table)
        try:
            return executor.query(self.COLUMNS_QUERY, (schema, name))
        except Exception as e:
            raise IntrospectionError(f"Could not read columns of {table}: {e}") from e

    @staticmethod
    def column_definition(column: Dict) -> str:
        type_str = column['data_type']
        max_len = column.get('character_maximum_length')
        precision = column.get('numeric_precision')
        scale = column.get('numeric_scale')

        if type_str in LENGTH_TYPES and max_len is not None:
            type_str = f"{type_str}({max_len})"
        elif type_str in PRECISION_TYPES and precision is not None and scale is not None:
            type_str = f"{type_str}({precision},{scale})"
        elif type_str == 'ARRAY':
            # udt_name of an array is the element type prefixed with an underscore
            element = column['udt_name']
            element = element[1:] if element.startswith('_') else element
            type_str = f"{udt_type(column.get('udt_schema'), element)}[]"
        elif type_str == 'USER-DEFINED':
            type_str = udt_type(column.get('udt_schema'), column['udt_name'])

        line = f"{quote_ident(column['column_name'])} {type_str}"
        if column.get('is_nullable') == 'NO':
            line += " NOT NULL"
        return line

    def create_statement(self, table: str, columns: List[Dict]) -> str:
        body = ",\n".join(f"    {self.column_definition(c)}" for c in columns)
        return f"CREATE TABLE {quote_table(table)} (\n{body}\n);\n"

    def generate(self, table: str, columns: List[Dict], sink: TextIO):
        sink.write(f"DROP TABLE IF EXISTS {quote_table(table)} CASCADE;\n\n")
        sink.write(self.create_statement(table, columns))
        sink.write("\n")
        self.logger.debug(f"[SCHEMA] {table}: {len(columns)} columns")
