"""
Fluent SQL statement builder.

A QueryBuilder is created through one of its statement-kind constructors,
refined through chained clause setters, and rendered with ``build()`` into
SQL text plus a ``:name`` bind map for the executor.

Example:
    >>> q = (
    ...     QueryBuilder.select("SELECT * FROM users")
    ...     .where({"id": 110})
    ...     .order(["username ASC", "id DESC"])
    ...     .limit(5)
    ...     .group("id")
    ...     .offset(6)
    ... )
    >>> q.render()
    'SELECT * FROM users WHERE id = :id GROUP BY id ORDER BY username ASC, id DESC LIMIT 5 OFFSET 6'
    >>> q.bindings
    {':id': 110}
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence, Tuple, Union

from query_hub.utils.logging import get_logger

from .core.clauses import ClauseKey, prepare_clause_data
from .core.parameters import merge_bindings, normalize_params
from .core.parts import ClausePart, StatementParts, replace_prefix
from .dialects import Dialect, MySQLDialect
from .exceptions import ConditionFormatError, InvalidLimitError, QueryBuilderError
from .operations.batch import DEFAULT_CHUNK_SIZE, BatchStatement, chunk_insert_multi

logger = get_logger(__name__)

SQL_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
CREATED_AT_COLUMN = "created_at"
UPDATED_AT_COLUMN = "updated_at"

TimestampInput = Union[datetime, str, int, float, None]


class StatementKind(str, Enum):
    """Statement kinds; the executor picks result semantics from these."""

    SELECT = "select"
    INSERT = "insert"
    INSERT_MULTI = "insert_multi"
    UPDATE = "update"
    DELETE = "delete"
    TRUNCATE = "truncate"
    QUERY = "query"


@dataclass(frozen=True)
class BuiltQuery:
    """
    Render output handed to the executor.

    Attributes:
        sql: Final SQL text (statements joined by ``; `` for insert_multi)
        bindings: Merged ``:name`` bind map
        input_bindings: Bindings from INSERT values / UPDATE SET
        where_bindings: Bindings from WHERE conditions and caller params
        kind: Statement kind
        parts: Clause slot snapshot
        batch: Multi-row INSERT statements (insert_multi only)
    """

    sql: str
    bindings: Dict[str, Any]
    input_bindings: Dict[str, Any]
    where_bindings: Dict[str, Any]
    kind: StatementKind
    parts: Dict[str, Optional[str]]
    batch: Tuple[BatchStatement, ...] = field(default_factory=tuple)

    @property
    def is_batch(self) -> bool:
        return self.kind is StatementKind.INSERT_MULTI


def to_sql_timestamp(value: TimestampInput = None) -> str:
    """
    Format a timestamp as ``YYYY-mm-dd HH:MM:SS``.

    Args:
        value: datetime, ISO-8601 string, UNIX seconds, or None for now

    Examples:
        >>> to_sql_timestamp(datetime(2024, 1, 2, 3, 4, 5))
        '2024-01-02 03:04:05'
        >>> to_sql_timestamp("2024-01-02T03:04:05")
        '2024-01-02 03:04:05'
    """
    if value is None:
        moment = datetime.now()
    elif isinstance(value, datetime):
        moment = value
    elif isinstance(value, str):
        try:
            moment = datetime.fromisoformat(value.strip())
        except ValueError:
            raise QueryBuilderError(f"Unparseable timestamp: {value!r}") from None
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        moment = datetime.fromtimestamp(value)
    else:
        raise QueryBuilderError(f"Unsupported timestamp type: {type(value).__name__}")
    return moment.strftime(SQL_TIMESTAMP_FORMAT)


def _to_count_value(value: Any, clause: ClausePart) -> int:
    """Validate a LIMIT/OFFSET value as a non-negative integer."""
    if isinstance(value, bool):
        raise InvalidLimitError(f"{clause.value} value is incorrect: {value!r}", clause=clause.value)
    if isinstance(value, int):
        number = value
    elif isinstance(value, str) and value.strip().isdigit():
        number = int(value.strip())
    else:
        raise InvalidLimitError(f"{clause.value} value is incorrect: {value!r}", clause=clause.value)
    if number < 0:
        raise InvalidLimitError(f"{clause.value} value must not be negative", clause=clause.value)
    return number


def _keyword_clause(keyword: str, value: Union[str, Sequence[str]]) -> Optional[str]:
    """Join a term list and normalize its leading keyword; empty input clears the slot."""
    if not isinstance(value, str):
        value = ", ".join(str(term).strip() for term in value if str(term).strip())
    text = replace_prefix(keyword, value, set_if_not_exists=False)
    if not text:
        return None
    return replace_prefix(keyword, text)


class QueryBuilder:
    """
    Fluent builder for one SQL statement.

    Construct through ``select``, ``query``, ``insert``, ``insert_multi``,
    ``update``, ``delete`` or ``truncate``. The statement kind is fixed at
    construction. Clause setters mutate and return ``self``; use ``copy()``
    to branch a partially built statement.
    """

    def __init__(self, kind: Union[StatementKind, str], dialect: Optional[Dialect] = None):
        self._kind = StatementKind(kind)
        self._dialect: Dialect = dialect or MySQLDialect()
        self._parts = StatementParts()
        self._input_bindings: Dict[str, Any] = {}
        self._where_bindings: Dict[str, Any] = {}
        self._params: Dict[str, Any] = {}
        self._batch: Tuple[BatchStatement, ...] = ()

    def __repr__(self) -> str:
        return f"<QueryBuilder kind={self._kind.value} sql={self.render()!r}>"

    @property
    def kind(self) -> StatementKind:
        return self._kind

    # ------------------------------------------------------------------
    # Statement-kind constructors
    # ------------------------------------------------------------------

    @classmethod
    def select(
        cls,
        sql: str,
        params: Optional[Mapping[str, Any]] = None,
        dialect: Optional[Dialect] = None,
    ) -> "QueryBuilder":
        """
        Start a SELECT from pre-written text.

        ``params`` are merged into the bind map as-is (keys gain a ``:``
        prefix if missing); the caller owns placeholder correctness.
        """
        builder = cls(StatementKind.SELECT, dialect)
        builder._parts.set_part(ClausePart.SELECT, replace_prefix("SELECT", sql))
        builder._add_params(params)
        return builder

    @classmethod
    def query(
        cls,
        sql: str,
        params: Optional[Mapping[str, Any]] = None,
        dialect: Optional[Dialect] = None,
    ) -> "QueryBuilder":
        """Wrap arbitrary SQL (DDL, CTEs, ...) verbatim."""
        builder = cls(StatementKind.QUERY, dialect)
        builder._parts.set_part(ClausePart.SELECT, sql.strip())
        builder._add_params(params)
        return builder

    @classmethod
    def insert(
        cls,
        table: str,
        data: Mapping[str, Any],
        add_timestamps: bool = False,
        timestamp: TimestampInput = None,
        dialect: Optional[Dialect] = None,
    ) -> "QueryBuilder":
        """
        Build a single-row INSERT.

        Args:
            table: Table name
            data: Column to value mapping; ``raw()`` values are inlined
            add_timestamps: Add ``created_at``/``updated_at`` (same value)
                unless already present in ``data``
            timestamp: Timestamp to use instead of now
        """
        builder = cls(StatementKind.INSERT, dialect)

        payload = dict(data)
        if add_timestamps:
            stamp = to_sql_timestamp(timestamp)
            payload.setdefault(CREATED_AT_COLUMN, stamp)
            payload.setdefault(UPDATED_AT_COLUMN, stamp)

        prepared = prepare_clause_data(payload)
        if len(prepared.fragments) != len(prepared.fields):
            raise ConditionFormatError("INSERT values must be keyed by column", clause="INSERT")

        builder._input_bindings = dict(prepared.bindings)
        builder._parts.set_part(
            ClausePart.SELECT,
            builder._dialect.build_insert(table, prepared.fields, prepared.values),
        )
        return builder

    @classmethod
    def insert_multi(
        cls,
        table: str,
        columns: Sequence[str],
        rows: Iterable[Sequence[Any]],
        insert_ignore: bool = False,
        upsert: Optional[str] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        dialect: Optional[Dialect] = None,
    ) -> "QueryBuilder":
        """
        Build grouped multi-row INSERTs with positional placeholders.

        See ``chunk_insert_multi`` for the chunking contract.
        """
        builder = cls(StatementKind.INSERT_MULTI, dialect)
        builder._batch = tuple(
            chunk_insert_multi(
                table,
                columns,
                rows,
                insert_ignore=insert_ignore,
                upsert=upsert,
                chunk_size=chunk_size,
                dialect=builder._dialect,
            )
        )
        return builder

    @classmethod
    def update(
        cls,
        table: str,
        data: Mapping[ClauseKey, Any],
        where: Mapping[ClauseKey, Any],
        add_timestamps: bool = False,
        timestamp: TimestampInput = None,
        dialect: Optional[Dialect] = None,
    ) -> "QueryBuilder":
        """
        Build an UPDATE.

        SET entries and WHERE conditions share one placeholder namespace, so
        the same column in both must carry the same value; qualify one of
        them (``users.status``) to bind different values.

        Args:
            table: Table name
            data: Column to value mapping for SET; integer keys with
                ``raw()`` values add bare assignments
            where: Conditions, as for ``where()``
            add_timestamps: Add ``updated_at`` unless already present
            timestamp: Timestamp to use instead of now
        """
        builder = cls(StatementKind.UPDATE, dialect)

        payload = dict(data)
        if add_timestamps:
            payload.setdefault(UPDATED_AT_COLUMN, to_sql_timestamp(timestamp))

        prepared = prepare_clause_data(payload)
        if not prepared.fragments:
            raise QueryBuilderError("UPDATE requires at least one assignment", clause="SET")

        builder._input_bindings = dict(prepared.bindings)
        builder._parts.set_part(
            ClausePart.SELECT,
            builder._dialect.build_update(table, prepared.joined_fragments(", ")),
        )
        builder.where(where)

        if not where:
            logger.warning("sql.update_without_where", table=table)
        return builder

    @classmethod
    def delete(
        cls,
        table: str,
        where: Mapping[ClauseKey, Any],
        limit: Optional[int] = None,
        dialect: Optional[Dialect] = None,
    ) -> "QueryBuilder":
        """Build a DELETE with optional LIMIT."""
        builder = cls(StatementKind.DELETE, dialect)
        builder._parts.set_part(ClausePart.SELECT, builder._dialect.build_delete(table))
        builder.where(where)

        if limit is not None:
            builder.limit(limit)

        if not where:
            logger.warning("sql.delete_without_where", table=table)
        return builder

    @classmethod
    def truncate(cls, table: str, dialect: Optional[Dialect] = None) -> "QueryBuilder":
        builder = cls(StatementKind.TRUNCATE, dialect)
        builder._parts.set_part(ClausePart.SELECT, builder._dialect.build_truncate(table))
        return builder

    # ------------------------------------------------------------------
    # Clause setters
    # ------------------------------------------------------------------

    def from_(self, source: str) -> "QueryBuilder":
        self._parts.set_part(ClausePart.FROM, replace_prefix("FROM", source))
        return self

    def where(
        self,
        conditions: Mapping[ClauseKey, Any],
        params: Optional[Mapping[str, Any]] = None,
    ) -> "QueryBuilder":
        """
        Set the WHERE clause from a condition mapping.

        Conditions are ANDed in mapping order. Values may be literals,
        ``[operator, value]`` pairs or ``raw()`` fragments; integer keys hold
        bare ``raw()`` conditions. Calling ``where`` again replaces the
        clause and its bindings. ``params`` are extra named parameters for
        placeholders already present in the SQL text.
        """
        where_bindings = self._where_bindings
        where_clause = self._parts.get_part(ClausePart.WHERE)
        if conditions:
            prepared = prepare_clause_data(conditions)
            where_bindings = dict(prepared.bindings)
            where_clause = "WHERE " + prepared.joined_fragments(" AND ")
        candidate_params = self._candidate_params(params)

        self._merged_bindings(where_bindings=where_bindings, params=candidate_params)
        self._parts.set_part(ClausePart.WHERE, where_clause)
        self._where_bindings = where_bindings
        self._params = candidate_params
        return self

    def group(self, columns: Union[str, Sequence[str]]) -> "QueryBuilder":
        self._parts.set_part(ClausePart.GROUP, _keyword_clause("GROUP BY", columns))
        return self

    def having(self, condition: str) -> "QueryBuilder":
        self._parts.set_part(ClausePart.HAVING, _keyword_clause("HAVING", condition))
        return self

    def order(self, terms: Union[str, Sequence[str]]) -> "QueryBuilder":
        self._parts.set_part(ClausePart.ORDER, _keyword_clause("ORDER BY", terms))
        return self

    def limit(self, value: Union[int, str]) -> "QueryBuilder":
        number = _to_count_value(value, ClausePart.LIMIT)
        self._parts.set_part(ClausePart.LIMIT, f"LIMIT {number}")
        return self

    def offset(self, value: Union[int, str]) -> "QueryBuilder":
        number = _to_count_value(value, ClausePart.OFFSET)
        self._parts.set_part(ClausePart.OFFSET, f"OFFSET {number}")
        return self

    def to_count(self, column: str = "*") -> "QueryBuilder":
        """
        Render as ``SELECT COUNT(<column>)`` without ORDER/LIMIT/OFFSET.

        Raises:
            MissingFromError: If ``from_()`` has not been called
        """
        self._parts.to_count(column)
        return self

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def _candidate_params(self, params: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        candidate = dict(self._params)
        if params:
            merge_bindings(candidate, normalize_params(params), clause="params")
        return candidate

    def _add_params(self, params: Optional[Mapping[str, Any]]) -> None:
        candidate = self._candidate_params(params)
        self._merged_bindings(params=candidate)
        self._params = candidate

    def _merged_bindings(
        self,
        where_bindings: Optional[Mapping[str, Any]] = None,
        params: Optional[Mapping[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Merge every binding source; candidate maps replace the stored ones."""
        if where_bindings is None:
            where_bindings = self._where_bindings
        if params is None:
            params = self._params
        bindings: Dict[str, Any] = {}
        merge_bindings(bindings, self._input_bindings, clause="SET")
        merge_bindings(bindings, where_bindings, clause=ClausePart.WHERE.value)
        merge_bindings(bindings, params, clause="params")
        return bindings

    @property
    def bindings(self) -> Dict[str, Any]:
        """Merged bind map (a fresh dict on every access)."""
        return self._merged_bindings()

    @property
    def batch(self) -> Tuple[BatchStatement, ...]:
        return self._batch

    def render(self) -> str:
        """Render the SQL text. Repeated calls return identical output."""
        if self._kind is StatementKind.INSERT_MULTI:
            return "; ".join(statement.sql for statement in self._batch)
        return self._parts.render()

    def build(self) -> BuiltQuery:
        """Render SQL and bindings for the executor."""
        sql = self.render()
        bindings = self._merged_bindings()
        where_bindings = dict(self._where_bindings)
        where_bindings.update(self._params)

        logger.debug(
            "sql.rendered",
            kind=self._kind.value,
            sql=sql,
            placeholders=sorted(bindings),
            batch_statements=len(self._batch),
        )
        return BuiltQuery(
            sql=sql,
            bindings=bindings,
            input_bindings=dict(self._input_bindings),
            where_bindings=where_bindings,
            kind=self._kind,
            parts=self._parts.parts,
            batch=self._batch,
        )

    def copy(self) -> "QueryBuilder":
        """Return an independent builder with the same state."""
        clone = type(self)(self._kind, self._dialect)
        clone._parts = self._parts.copy()
        clone._input_bindings = dict(self._input_bindings)
        clone._where_bindings = dict(self._where_bindings)
        clone._params = dict(self._params)
        clone._batch = self._batch
        return clone
