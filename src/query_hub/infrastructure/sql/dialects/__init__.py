"""SQL dialects: statement head shapes for each supported database."""

from typing import List, Optional, Protocol

from .mysql import MySQLDialect


class Dialect(Protocol):
    """Protocol for SQL dialects."""

    name: str

    def build_insert(self, table: str, columns: List[str], values: List[str]) -> str: ...
    def build_insert_multi(
        self,
        table: str,
        columns: List[str],
        row_count: int,
        insert_ignore: bool = False,
        upsert: Optional[str] = None,
    ) -> str: ...
    def build_update(self, table: str, assignments: str) -> str: ...
    def build_delete(self, table: str) -> str: ...
    def build_truncate(self, table: str) -> str: ...


__all__ = ["Dialect", "MySQLDialect"]
