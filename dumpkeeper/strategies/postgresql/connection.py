from contextlib import contextmanager

import psycopg2
from psycopg2.extras import RealDictCursor

from ...models import DatabaseConfig


class PostgresExecutor:
    """Query-executing handle over one psycopg2 connection.

    Rows come back as column-ordered dicts. The connection runs in autocommit
    mode so a failed statement on one table does not poison the next query;
    snapshot() opens an explicit transaction around one table's reads.
    """

    def __init__(self, conn):
        self.conn = conn

    @classmethod
    def connect(cls, db_config: DatabaseConfig, timeout: int = 30) -> "PostgresExecutor":
        conn = psycopg2.connect(
            host=db_config.host,
            port=db_config.port,
            user=db_config.user,
            password=db_config.password,
            dbname=db_config.database_name,
            connect_timeout=timeout,
        )
        conn.autocommit = True
        return cls(conn)

    def query(self, sql: str, params=None):
        with self.conn.cursor(cursor_factory=RealDictCursor) as cursor:
            cursor.execute(sql, params)
            if cursor.description is None:
                return []
            return cursor.fetchall()

    @contextmanager
    def snapshot(self):
        """Read-only REPEATABLE READ transaction: every query inside sees one snapshot."""
        with self.conn.cursor() as cursor:
            cursor.execute("BEGIN ISOLATION LEVEL REPEATABLE READ READ ONLY")
        committed = False
        try:
            yield self
            with self.conn.cursor() as cursor:
                cursor.execute("COMMIT")
            committed = True
        finally:
            if not committed and not self.conn.closed:
                with self.conn.cursor() as cursor:
                    cursor.execute("ROLLBACK")

    def close(self):
        if not self.conn.closed:
            self.conn.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
