from typing import Tuple


def split_table_name(table: str) -> Tuple[str, str]:
    """'schema.table' -> (schema, table); a bare name lives in public."""
    if '.' in table:
        schema, name = table.split('.', 1)
        return schema, name
    return 'public', table


def quote_ident(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def quote_table(table: str) -> str:
    schema, name = split_table_name(table)
    return f"{quote_ident(schema)}.{quote_ident(name)}"
