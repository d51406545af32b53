"""
Multi-row INSERT batching.

Splits a large sequence of rows into groups of at most ``chunk_size`` rows and
renders one multi-row INSERT per group, so large loads stay under driver
packet limits without a round trip per row.
"""

from dataclasses import dataclass
from itertools import islice
from typing import Any, Iterable, Iterator, List, Optional, Sequence, Tuple

from ..dialects import Dialect, MySQLDialect
from ..exceptions import BatchShapeError

DEFAULT_CHUNK_SIZE = 100


@dataclass(frozen=True)
class BatchStatement:
    """One multi-row INSERT and its row-major positional values."""

    sql: str
    values: Tuple[Any, ...]
    row_count: int


def iter_chunks(rows: Iterable[Sequence[Any]], chunk_size: int) -> Iterator[List[Sequence[Any]]]:
    """
    Yield consecutive groups of at most ``chunk_size`` rows.

    Examples:
        >>> list(iter_chunks([[1], [2], [3]], 2))
        [[[1], [2]], [[3]]]
    """
    iterator = iter(rows)
    while True:
        chunk = list(islice(iterator, chunk_size))
        if not chunk:
            return
        yield chunk


def chunk_insert_multi(
    table: str,
    columns: Sequence[str],
    rows: Iterable[Sequence[Any]],
    insert_ignore: bool = False,
    upsert: Optional[str] = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    dialect: Optional[Dialect] = None,
) -> List[BatchStatement]:
    """
    Build grouped multi-row INSERT statements with positional placeholders.

    Statement ``i`` binds to ``statements[i].values``. Concatenating all value
    tuples reproduces the row-major flattening of the input.

    Args:
        table: Table name
        columns: Column names; each row must match their order and count
        rows: Row tuples (any iterable, consumed once)
        insert_ignore: Emit ``INSERT IGNORE``
        upsert: Optional ``ON DUPLICATE KEY UPDATE`` assignment list
        chunk_size: Maximum rows per statement
        dialect: SQL dialect (defaults to MySQL)

    Returns:
        List of BatchStatement, ``ceil(len(rows) / chunk_size)`` long

    Raises:
        BatchShapeError: For an empty column list, a non-positive chunk size,
            or a row whose length differs from the column count

    Examples:
        >>> batch = chunk_insert_multi("t", ["a", "b"], [[1, 2], [3, 4], [5, 6]], chunk_size=2)
        >>> batch[0].sql, batch[0].values
        ('INSERT INTO t (a, b) VALUES (?, ?), (?, ?)', (1, 2, 3, 4))
        >>> batch[1].sql, batch[1].values
        ('INSERT INTO t (a, b) VALUES (?, ?)', (5, 6))
    """
    columns = list(columns)
    if not columns:
        raise BatchShapeError("Multi-row insert requires at least one column")
    if isinstance(chunk_size, bool) or not isinstance(chunk_size, int) or chunk_size < 1:
        raise BatchShapeError(f"Chunk size must be a positive integer, got {chunk_size!r}")

    dialect = dialect or MySQLDialect()
    statements: List[BatchStatement] = []
    row_index = 0

    for chunk in iter_chunks(rows, chunk_size):
        values: List[Any] = []
        for row in chunk:
            if isinstance(row, (str, bytes)):
                raise BatchShapeError("Row must be a sequence of values", row_index=row_index)
            row = tuple(row)
            if len(row) != len(columns):
                raise BatchShapeError(
                    f"Row has {len(row)} values, expected {len(columns)}",
                    row_index=row_index,
                )
            values.extend(row)
            row_index += 1

        statements.append(
            BatchStatement(
                sql=dialect.build_insert_multi(
                    table, columns, len(chunk), insert_ignore, upsert
                ),
                values=tuple(values),
                row_count=len(chunk),
            )
        )

    return statements
