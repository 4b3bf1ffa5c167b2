from typing import List

from ...config import Config
from ...errors import IntrospectionError


class TableEnumerator:
    QUERY = """
        SELECT schemaname, tablename
        FROM pg_tables
        WHERE schemaname NOT IN %s
        ORDER BY schemaname, tablename
    """

    def __init__(self, logger):
        self.logger = logger

    def list_tables(self, executor) -> List[str]:
        try:
            rows = executor.query(self.QUERY, (tuple(Config.SYSTEM_SCHEMAS),))
        except Exception as e:
            self.logger.error(f"[TABLES] ERROR: {e}")
            raise IntrospectionError(f"Could not list tables: {e}") from e

        tables = [f"{row['schemaname']}.{row['tablename']}" for row in rows]
        self.logger.info(f"[TABLES] Total tables: {len(tables)}")
        return tables
