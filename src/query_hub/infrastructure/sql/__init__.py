"""
SQL module for statement assembly.

Builds SQL text from ordered clause slots and a named bind map, with raw
fragment support, count-mode rewriting and chunked multi-row INSERTs.
"""

from .builder import BuiltQuery, QueryBuilder, StatementKind, to_sql_timestamp
from .core.clauses import PreparedClauseData, prepare_clause_data
from .core.parts import ClausePart, StatementParts, replace_prefix
from .core.values import classify_value, decode_raw, is_raw, raw
from .dialects import Dialect, MySQLDialect
from .exceptions import (
    BatchShapeError,
    ConditionFormatError,
    InvalidLimitError,
    MissingFromError,
    PlaceholderCollisionError,
    QueryBuilderError,
    RawFragmentError,
    UnknownClauseError,
)
from .operations.batch import BatchStatement, chunk_insert_multi

__all__ = [
    "QueryBuilder",
    "BuiltQuery",
    "StatementKind",
    "to_sql_timestamp",
    "PreparedClauseData",
    "prepare_clause_data",
    "ClausePart",
    "StatementParts",
    "replace_prefix",
    "classify_value",
    "decode_raw",
    "is_raw",
    "raw",
    "Dialect",
    "MySQLDialect",
    "BatchStatement",
    "chunk_insert_multi",
    "QueryBuilderError",
    "UnknownClauseError",
    "MissingFromError",
    "ConditionFormatError",
    "RawFragmentError",
    "InvalidLimitError",
    "PlaceholderCollisionError",
    "BatchShapeError",
]
