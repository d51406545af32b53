"""
MySQL-specific SQL dialect implementation.

Provides the statement heads the builder fills into the SELECT slot, plus the
multi-row INSERT shape with ``INSERT IGNORE`` and ``ON DUPLICATE KEY UPDATE``.
Table and column names are emitted as given.
"""

from typing import List, Optional

from ..core.parts import replace_prefix

POSITIONAL_PLACEHOLDER = "?"
UPSERT_KEYWORD = "ON DUPLICATE KEY UPDATE"


class MySQLDialect:
    """MySQL SQL dialect implementation."""

    name = "mysql"

    def build_insert(self, table: str, columns: List[str], values: List[str]) -> str:
        """
        Build a single-row INSERT statement.

        Args:
            table: Table name
            columns: Column names
            values: Placeholders or inlined SQL, aligned with ``columns``

        Returns:
            INSERT SQL statement
        """
        return (
            f"INSERT INTO {table} ({', '.join(columns)}) "
            f"VALUES ({', '.join(values)})"
        )

    def build_row_placeholder(self, column_count: int) -> str:
        """
        Build the positional placeholder group for one row.

        Examples:
            >>> MySQLDialect().build_row_placeholder(3)
            '(?, ?, ?)'
        """
        return "(" + ", ".join([POSITIONAL_PLACEHOLDER] * column_count) + ")"

    def build_insert_multi(
        self,
        table: str,
        columns: List[str],
        row_count: int,
        insert_ignore: bool = False,
        upsert: Optional[str] = None,
    ) -> str:
        """
        Build a multi-row INSERT with positional placeholders.

        Args:
            table: Table name
            columns: Column names
            row_count: Number of row placeholder groups
            insert_ignore: Emit ``INSERT IGNORE``
            upsert: Assignment list for ``ON DUPLICATE KEY UPDATE``; a leading
                keyword in the text is tolerated

        Returns:
            Multi-row INSERT SQL statement

        Examples:
            >>> MySQLDialect().build_insert_multi("t", ["a", "b"], 2)
            'INSERT INTO t (a, b) VALUES (?, ?), (?, ?)'
        """
        verb = "INSERT IGNORE INTO" if insert_ignore else "INSERT INTO"
        rows = ", ".join([self.build_row_placeholder(len(columns))] * row_count)
        sql = f"{verb} {table} ({', '.join(columns)}) VALUES {rows}"

        if upsert and upsert.strip():
            sql = f"{sql} {replace_prefix(UPSERT_KEYWORD, upsert)}"

        return sql

    def build_update(self, table: str, assignments: str) -> str:
        return f"UPDATE {table} SET {assignments}"

    def build_delete(self, table: str) -> str:
        return f"DELETE FROM {table}"

    def build_truncate(self, table: str) -> str:
        return f"TRUNCATE TABLE {table}"
