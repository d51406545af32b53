"""
Database executor for built statements.

Runs QueryBuilder output through a SQLAlchemy engine and shapes the result:
rows, single rows, columns, key/value pairs, scalars, affected row counts or
the last inserted id.

Usage:
    db = Database.from_settings()

    users = db.find_all(QueryBuilder.select("SELECT * FROM users").limit(10))
    total = db.find_count(QueryBuilder.select("SELECT id").from_("users"))
    new_id = db.run(QueryBuilder.insert("users", {"username": "Alex"}))

    db.dispose()

The engine (and its connection pool) is owned by the Database instance; pass
the instance to call sites instead of looking it up globally.
"""

from __future__ import annotations

import re
from contextlib import contextmanager
from itertools import count
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, TypeVar

import sqlalchemy as sa
from sqlalchemy.engine import Connection, Engine, Result
from sqlalchemy.exc import SQLAlchemyError

from query_hub.config.settings import Settings, get_engine_options, get_settings
from query_hub.infrastructure.sql.builder import BuiltQuery, QueryBuilder, StatementKind
from query_hub.infrastructure.sql.core.parameters import normalize_params, strip_placeholder
from query_hub.infrastructure.sql.exceptions import QueryBuilderError
from query_hub.infrastructure.sql.operations.batch import DEFAULT_CHUNK_SIZE
from query_hub.utils.logging import get_logger

from .rows import RowFactory, materialize, materialize_one

logger = get_logger(__name__)

T = TypeVar("T")

# Quoted literals and identifiers are matched whole so a ? inside them is kept
_POSITIONAL_TOKEN = re.compile(
    r"'(?:[^'\\]|\\.|'')*'|\"(?:[^\"\\]|\\.|\"\")*\"|`[^`]*`|\?"
)

# Dialects whose DBAPI cursor does not report the generated key in lastrowid
NO_LASTROWID_DIALECTS = ("postgresql",)


def to_driver_params(bindings: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Convert a ``:name`` bind map to the plain-name dict ``sqlalchemy.text`` expects.

    Examples:
        >>> to_driver_params({":id": 1, ":t_name": "x"})
        {'id': 1, 't_name': 'x'}
    """
    return {strip_placeholder(key): value for key, value in bindings.items()}


def to_driver_positional_sql(sql: str, paramstyle: str) -> str:
    """
    Rewrite ``?`` markers for the driver's positional paramstyle.

    A ``?`` inside a quoted literal or identifier is not a marker and is
    left as written.

    Examples:
        >>> to_driver_positional_sql("VALUES (?, ?)", "qmark")
        'VALUES (?, ?)'
        >>> to_driver_positional_sql("VALUES (?, ?)", "format")
        'VALUES (%s, %s)'
        >>> to_driver_positional_sql("VALUES (?, ?)", "numeric")
        'VALUES (:1, :2)'
    """
    if paramstyle == "qmark":
        return sql
    if paramstyle in ("format", "pyformat"):
        sql = sql.replace("%", "%%")
        marker: Callable[[int], str] = lambda index: "%s"
    elif paramstyle == "numeric":
        marker = lambda index: f":{index}"
    else:
        raise QueryBuilderError(
            f"Driver paramstyle {paramstyle!r} does not support positional batches"
        )

    indexes = count(1)

    def substitute(match: "re.Match[str]") -> str:
        token = match.group(0)
        return marker(next(indexes)) if token == "?" else token

    return _POSITIONAL_TOKEN.sub(substitute, sql)


def last_insert_id(result: Result, dialect_name: str) -> Optional[Any]:
    """
    Return the id generated by a single-row INSERT.

    PostgreSQL drivers do not report generated keys through ``lastrowid``
    (psycopg gives the row OID, if anything), so None is returned there.
    When the key is needed, execute ``INSERT ... RETURNING id`` on a
    connection from ``connect(transactional=True)`` and read the scalar.
    """
    if dialect_name in NO_LASTROWID_DIALECTS:
        return None
    return result.lastrowid


class Database:
    """
    Executor for QueryBuilder statements.

    Args:
        engine: SQLAlchemy engine (owns the connection pool)
        statement_timeout: Per-statement timeout in seconds applied to each
            connection on MySQL and PostgreSQL (0 disables)
        batch_size: Default rows per statement for ``insert_multi``
    """

    def __init__(
        self,
        engine: Engine,
        statement_timeout: int = 0,
        batch_size: int = DEFAULT_CHUNK_SIZE,
    ):
        self.engine = engine
        self.statement_timeout = statement_timeout
        self.batch_size = batch_size

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "Database":
        """Create an engine from QH_* settings and wrap it."""
        settings = settings or get_settings()
        engine = sa.create_engine(settings.DATABASE_URL, **get_engine_options(settings))
        logger.info(
            "database.engine_created",
            dialect=engine.dialect.name,
            pool_size=settings.DB_POOL_SIZE,
            batch_size=settings.DB_BATCH_SIZE,
        )
        return cls(
            engine,
            statement_timeout=settings.DB_STATEMENT_TIMEOUT,
            batch_size=settings.DB_BATCH_SIZE,
        )

    @classmethod
    def from_url(cls, url: str, **engine_options: Any) -> "Database":
        return cls(sa.create_engine(url, **engine_options))

    def dispose(self) -> None:
        """Close every pooled connection."""
        self.engine.dispose()
        logger.info("database.disposed", dialect=self.engine.dialect.name)

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.dispose()

    # ------------------------------------------------------------------
    # Connections
    # ------------------------------------------------------------------

    def _apply_statement_timeout(self, conn: Connection) -> None:
        if not self.statement_timeout:
            return
        milliseconds = int(self.statement_timeout * 1000)
        dialect = conn.dialect.name
        if dialect in ("mysql", "mariadb"):
            conn.exec_driver_sql(f"SET SESSION MAX_EXECUTION_TIME = {milliseconds}")
        elif dialect == "postgresql":
            conn.exec_driver_sql(f"SET statement_timeout = {milliseconds}")

    @contextmanager
    def connect(self, transactional: bool = False) -> Iterator[Connection]:
        """
        Yield a pooled connection, inside a transaction when ``transactional``.
        """
        context = self.engine.begin() if transactional else self.engine.connect()
        with context as conn:
            self._apply_statement_timeout(conn)
            yield conn

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def _execute_built(self, conn: Connection, built: BuiltQuery) -> Result:
        return conn.execute(sa.text(built.sql), to_driver_params(built.bindings))

    def _execute_batch(self, conn: Connection, built: BuiltQuery) -> int:
        paramstyle = conn.dialect.paramstyle
        affected = 0
        for statement in built.batch:
            result = conn.exec_driver_sql(
                to_driver_positional_sql(statement.sql, paramstyle), statement.values
            )
            affected += max(result.rowcount, 0)
        return affected

    def _fetch(self, query: QueryBuilder, consume: Callable[[Result], T]) -> T:
        built = query.build()
        if built.is_batch:
            raise QueryBuilderError("Multi-row INSERT batches return no rows", clause="insert_multi")

        try:
            with self.connect() as conn:
                return consume(self._execute_built(conn, built))
        except SQLAlchemyError as e:
            logger.error(
                "sql.fetch_failed",
                kind=built.kind.value,
                sql=built.sql,
                error_type=type(e).__name__,
                error=str(e),
            )
            raise

    def run(self, query: QueryBuilder) -> Any:
        """
        Execute a statement inside a transaction.

        Returns:
            The last inserted id for insert (None on PostgreSQL, see
            ``last_insert_id``); the total affected rows for
            insert_multi; otherwise the affected row count (0 if nothing
            changed or matched)
        """
        built = query.build()
        try:
            with self.connect(transactional=True) as conn:
                if built.is_batch:
                    outcome = self._execute_batch(conn, built)
                else:
                    result = self._execute_built(conn, built)
                    if built.kind is StatementKind.INSERT:
                        outcome = last_insert_id(result, conn.dialect.name)
                    else:
                        outcome = result.rowcount
        except SQLAlchemyError as e:
            logger.error(
                "sql.execution_failed",
                kind=built.kind.value,
                sql=built.sql,
                error_type=type(e).__name__,
                error=str(e),
            )
            raise

        logger.debug(
            "sql.executed",
            kind=built.kind.value,
            statements=len(built.batch) or 1,
            outcome=outcome,
        )
        return outcome

    def run_debug(self, query: QueryBuilder) -> Dict[str, Any]:
        """
        Execute a statement and report what was sent to the driver.

        Returns:
            Dictionary with ``kind``, ``sql``, ``params`` (or ``batch``) and
            ``result`` (as returned by ``run``)
        """
        built = query.build()
        report: Dict[str, Any] = {"kind": built.kind.value, "sql": built.sql}
        if built.is_batch:
            report["batch"] = [
                {"sql": statement.sql, "values": list(statement.values)}
                for statement in built.batch
            ]
        else:
            report["params"] = to_driver_params(built.bindings)
        report["result"] = self.run(query)
        logger.info("sql.debug", **report)
        return report

    def run_raw(self, sql: str, params: Optional[Mapping[str, Any]] = None) -> int:
        """
        Execute SQL text directly in a transaction.

        With ``params`` the text is bound through named placeholders;
        without, it is passed to the driver untouched.

        Returns:
            Affected row count (-1 when the driver does not report one)
        """
        with self.connect(transactional=True) as conn:
            if params is not None:
                result = conn.execute(sa.text(sql), to_driver_params(normalize_params(params)))
            else:
                result = conn.exec_driver_sql(sql)
            return result.rowcount

    def insert_multi(
        self,
        table: str,
        columns: Sequence[str],
        rows: Iterable[Sequence[Any]],
        insert_ignore: bool = False,
        upsert: Optional[str] = None,
    ) -> int:
        """Chunked multi-row INSERT using the configured batch size."""
        query = QueryBuilder.insert_multi(
            table,
            columns,
            rows,
            insert_ignore=insert_ignore,
            upsert=upsert,
            chunk_size=self.batch_size,
        )
        return self.run(query)

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    def find_all(self, query: QueryBuilder, row_type: Optional[RowFactory] = None) -> List[Any]:
        """Return every row as a dict, or as ``row_type(**row)``."""
        rows = self._fetch(query, lambda result: [dict(row) for row in result.mappings()])
        return materialize(rows, row_type) if row_type else rows

    def find_row(self, query: QueryBuilder, row_type: Optional[RowFactory] = None) -> Any:
        """Return the first row (dict or ``row_type``), or None."""
        row = self._fetch(query, lambda result: result.mappings().first())
        if row is None:
            return None
        return materialize_one(row, row_type) if row_type else dict(row)

    def find_col(self, query: QueryBuilder) -> List[Any]:
        """Return the first column of every row."""
        return self._fetch(query, lambda result: list(result.scalars().all()))

    def find_assoc(self, query: QueryBuilder) -> Dict[Any, Any]:
        """Return ``{first column: second column}`` over all rows."""
        return self._fetch(query, lambda result: {row[0]: row[1] for row in result})

    def find_one(self, query: QueryBuilder) -> Any:
        """Return the first column of the first row, or None."""
        return self._fetch(query, lambda result: result.scalar())

    def find_count(self, query: QueryBuilder, column: str = "*") -> int:
        """
        Count the rows a SELECT would return.

        Switches ``query`` to count mode (a one-way change).

        Raises:
            MissingFromError: If the query has no FROM clause
        """
        query.to_count(column)
        count = self.find_one(query)
        return int(count or 0)
