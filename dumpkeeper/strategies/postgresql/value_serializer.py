import json
import math
from datetime import date, datetime, time
from decimal import Decimal

from ...config import Config


class ValueSerializer:
    """Renders Python values returned by the driver as SQL literals."""

    def __init__(self, logger=None, max_length: int = Config.MAX_FIELD_LENGTH,
                 marker: str = Config.TRUNCATION_MARKER):
        self.logger = logger
        self.max_length = max_length
        self.marker = marker

    def truncate(self, text: str, where: str = "") -> str:
        if len(text) <= self.max_length:
            return text
        if self.logger:
            self.logger.warning(
                f"Truncating large field {where} ({len(text)} chars -> {self.max_length})"
            )
        return text[:self.max_length] + self.marker

    @staticmethod
    def quote(text: str) -> str:
        return "'" + text.replace("'", "''") + "'"

    @classmethod
    def array_literal(cls, values) -> str:
        """Python list -> PostgreSQL array text, e.g. {1,NULL,"a b"}."""
        return "{" + ",".join(cls.array_element(v) for v in values) + "}"

    @classmethod
    def array_element(cls, value) -> str:
        if value is None:
            return "NULL"
        if isinstance(value, (list, tuple)):
            return cls.array_literal(value)
        if isinstance(value, bool):
            return "t" if value else "f"
        if isinstance(value, (int, Decimal)):
            return str(value)
        if isinstance(value, float):
            if math.isnan(value):
                return "NaN"
            if math.isinf(value):
                return "Infinity" if value > 0 else "-Infinity"
            return repr(value)
        if isinstance(value, (datetime, date, time)):
            text = value.isoformat()
        elif isinstance(value, (bytes, bytearray, memoryview)):
            text = "\\x" + bytes(value).hex()
        elif isinstance(value, dict):
            text = json.dumps(value, default=str)
        else:
            text = str(value)
        return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'

    def serialize(self, value, where: str = "", array: bool = False) -> str:
        if value is None:
            return "NULL"
        if array and isinstance(value, (list, tuple)):
            return self.quote(self.truncate(self.array_literal(value), where))
        if isinstance(value, bool):
            return "TRUE" if value else "FALSE"
        if isinstance(value, str):
            return self.quote(self.truncate(value, where))
        if isinstance(value, int):
            return str(value)
        if isinstance(value, float):
            if math.isnan(value) or math.isinf(value):
                return self.quote(str(value).replace('inf', 'Infinity').replace('nan', 'NaN'))
            return repr(value)
        if isinstance(value, Decimal):
            if not value.is_finite():
                return self.quote(str(value))
            return str(value)
        if isinstance(value, (datetime, date, time)):
            return self.quote(value.isoformat())
        if isinstance(value, (dict, list)):
            return self.quote(self.truncate(json.dumps(value, default=str), where))
        if isinstance(value, (bytes, bytearray, memoryview)):
            return "'\\x" + bytes(value).hex() + "'"
        return self.quote(self.truncate(str(value), where))

    def serialize_row(self, row, columns, table: str = "", array_columns=frozenset()) -> str:
        values = [
            self.serialize(row.get(col), f"{table}.{col}", col in array_columns)
            for col in columns
        ]
        return "  (" + ", ".join(values) + ")"
