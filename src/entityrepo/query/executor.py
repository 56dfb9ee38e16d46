import decimal
import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Iterable, Mapping

import pandas as pd
from psycopg import sql

from entityrepo import db
from entityrepo.config import config
from entityrepo.query.select import Fragment, Select, as_sql, conjunction

logger = logging.getLogger(__name__)

Statement = Select | Fragment
Where = Fragment | Iterable[Fragment] | None


def statement_of(query: Statement) -> sql.Composable:
    if isinstance(query, Select):
        return query.compose()
    return as_sql(query)


class QueryExecutor(ABC):
    """
    Statement execution contract used by entity repositories.

    Implementations run the statements, escape identifiers and values,
    and resolve logical table names to physical ones.
    """

    @abstractmethod
    def get_table_name(self, logical_name: str) -> str:
        """Resolve a logical table name to the physical one."""

    @abstractmethod
    def insert(self, table: str, fields: Mapping[str, Any]) -> int:
        """Insert one row and return the affected-row count."""

    @abstractmethod
    def last_insert_id(self, table: str, column: str | None = None) -> Any:
        """Return the generated identifier of the last row inserted into `table`."""

    @abstractmethod
    def update(
        self,
        table: str,
        fields: Mapping[str, Any],
        where: Where = None,
        bind: Mapping[str, Any] | None = None,
    ) -> int:
        """Assign `fields` on the rows matching `where`; return the affected-row count."""

    @abstractmethod
    def delete(self, table: str, where: Where = None, bind: Mapping[str, Any] | None = None) -> int:
        """Delete the rows matching `where`; return the affected-row count."""

    def select(self) -> Select:
        return Select()

    @abstractmethod
    def fetch_row(self, query: Statement, bind: Mapping[str, Any] | None = None) -> dict | None:
        """Return the first row of the query result, or None."""

    @abstractmethod
    def fetch_all(self, query: Statement, bind: Mapping[str, Any] | None = None) -> list[dict]:
        """Return all rows of the query result."""

    @abstractmethod
    def fetch_dataframe(
        self, query: Statement, bind: Mapping[str, Any] | None = None
    ) -> pd.DataFrame:
        """Return the query result as a pandas DataFrame."""

    @abstractmethod
    def execute(self, statement: Statement, bind: Mapping[str, Any] | None = None) -> int:
        """Run a statement that returns no rows."""

    @abstractmethod
    def quote_identifier(self, name: str) -> str:
        """Escape `name` for use as an SQL identifier."""

    @abstractmethod
    def quote(self, value: Any) -> str:
        """Escape `value` as an SQL literal."""


class PgQueryExecutor(QueryExecutor):
    """
    PostgreSQL executor built on psycopg.

    Each call runs on a connection from `entityrepo.db.connection()`,
    so statements commit individually unless a connection override is set.
    Inserts use RETURNING *; the returned row is kept per thread and table
    to answer last_insert_id().
    """

    def __init__(self, table_prefix: str | None = None):
        self.table_prefix = config.table_prefix if table_prefix is None else table_prefix
        self._inserted = threading.local()

    def get_table_name(self, logical_name: str) -> str:
        return f"{self.table_prefix}{logical_name}"

    # =========================================================================
    # Writes
    # =========================================================================

    def insert(self, table: str, fields: Mapping[str, Any]) -> int:
        if fields:
            statement = sql.SQL("INSERT INTO {} ({}) VALUES ({}) RETURNING *").format(
                sql.Identifier(table),
                sql.SQL(", ").join(sql.Identifier(f) for f in fields),
                sql.SQL(", ").join(sql.Placeholder(f) for f in fields),
            )
            params = dict(fields)
        else:
            statement = sql.SQL("INSERT INTO {} DEFAULT VALUES RETURNING *").format(
                sql.Identifier(table)
            )
            params = None

        logger.debug("INSERT into %s (%s)", table, ", ".join(fields))
        with db.dict_cursor() as cur:
            cur.execute(statement, params)
            row = cur.fetchone()
            count = cur.rowcount

        if row is not None:
            self._last_rows()[table] = row
        return count

    def last_insert_id(self, table: str, column: str | None = None) -> Any:
        row = self._last_rows().get(table)
        if row is None:
            return None
        if column is None:
            return next(iter(row.values()), None)
        return row[column]

    def update(
        self,
        table: str,
        fields: Mapping[str, Any],
        where: Where = None,
        bind: Mapping[str, Any] | None = None,
    ) -> int:
        if not fields:
            raise ValueError(f"No fields to assign in UPDATE of {table}")

        params = {f"set_{field}": value for field, value in fields.items()}
        clash = params.keys() & (bind or {}).keys()
        if clash:
            raise ValueError(f"Bind names collide with SET placeholders: {sorted(clash)}")

        assignments = sql.SQL(", ").join(
            sql.SQL("{} = {}").format(sql.Identifier(field), sql.Placeholder(f"set_{field}"))
            for field in fields
        )
        statement = sql.SQL("UPDATE {} SET {}").format(sql.Identifier(table), assignments)
        condition = conjunction(where)
        if condition is not None:
            statement += sql.SQL(" WHERE ") + condition
        params.update(bind or {})

        logger.debug("UPDATE %s SET %s", table, ", ".join(fields))
        return self.execute(statement, params)

    def delete(self, table: str, where: Where = None, bind: Mapping[str, Any] | None = None) -> int:
        statement = sql.SQL("DELETE FROM {}").format(sql.Identifier(table))
        condition = conjunction(where)
        if condition is not None:
            statement += sql.SQL(" WHERE ") + condition

        logger.debug("DELETE from %s", table)
        return self.execute(statement, bind)

    def execute(self, statement: Statement, bind: Mapping[str, Any] | None = None) -> int:
        with db.dict_cursor() as cur:
            cur.execute(statement_of(statement), bind)
            return cur.rowcount

    # =========================================================================
    # Reads
    # =========================================================================

    def fetch_row(self, query: Statement, bind: Mapping[str, Any] | None = None) -> dict | None:
        with db.dict_cursor() as cur:
            cur.execute(statement_of(query), bind)
            return cur.fetchone()

    def fetch_all(self, query: Statement, bind: Mapping[str, Any] | None = None) -> list[dict]:
        with db.dict_cursor() as cur:
            cur.execute(statement_of(query), bind)
            return cur.fetchall()

    def fetch_dataframe(
        self, query: Statement, bind: Mapping[str, Any] | None = None
    ) -> pd.DataFrame:
        with db.dict_cursor() as cur:
            cur.execute(statement_of(query), bind)
            rows = cur.fetchall()
            columns = [desc.name for desc in cur.description] if cur.description else []

        df = pd.DataFrame(rows, columns=columns)
        # Convert decimal.Decimal columns to float for numeric compatibility
        for col in df.columns:
            if len(df) and df[col].apply(lambda x: isinstance(x, decimal.Decimal)).all():
                df[col] = df[col].astype(float)
        return df

    # =========================================================================
    # Quoting
    # =========================================================================

    def quote_identifier(self, name: str) -> str:
        with db.connection() as conn:
            return sql.Identifier(name).as_string(conn)

    def quote(self, value: Any) -> str:
        with db.connection() as conn:
            return sql.Literal(value).as_string(conn)

    def _last_rows(self) -> dict[str, dict]:
        rows = getattr(self._inserted, "rows", None)
        if rows is None:
            rows = self._inserted.rows = {}
        return rows
