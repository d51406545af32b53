"""
Row materialization.

Turns result rows (column name to value mappings) into instances of a caller
type. The target only needs to accept the column names as keyword arguments,
so dataclasses, Pydantic models and plain classes all work.
"""

from typing import Any, Callable, Iterable, List, Mapping, Optional, TypeVar

T = TypeVar("T")

RowFactory = Callable[..., T]


def materialize_one(row: Optional[Mapping[str, Any]], row_type: RowFactory) -> Optional[T]:
    """
    Build one ``row_type`` instance from a row mapping.

    Returns None for a missing row.

    Raises:
        TypeError: If ``row_type`` does not accept the row's columns
    """
    if row is None:
        return None
    return row_type(**dict(row))


def materialize(rows: Iterable[Mapping[str, Any]], row_type: RowFactory) -> List[T]:
    """
    Build ``row_type`` instances from row mappings, preserving order.

    Example:
        >>> from dataclasses import dataclass
        >>> @dataclass
        ... class User:
        ...     id: int
        ...     username: str
        >>> materialize([{"id": 1, "username": "Lew"}], User)
        [User(id=1, username='Lew')]
    """
    return [row_type(**dict(row)) for row in rows]
