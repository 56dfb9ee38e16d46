import logging
from typing import Mapping, Sequence

from psycopg import sql

from entityrepo.entity import EntityDescriptor
from entityrepo.errors import SchemaMismatch
from entityrepo.query import QueryExecutor

logger = logging.getLogger(__name__)


class SchemaAccessor:
    """
    Table structure helper.

    Resolves logical table names and reads table metadata from
    information_schema in the current schema. Also creates and drops
    tables, which the test fixtures and the CLI rely on.
    """

    def __init__(self, executor: QueryExecutor):
        self.executor = executor

    def get_table_name(self, logical_name: str) -> str:
        return self.executor.get_table_name(logical_name)

    def table_exists(self, logical_name: str) -> bool:
        row = self.executor.fetch_row(
            """
            SELECT 1 AS found
            FROM information_schema.tables
            WHERE table_schema = current_schema() AND table_name = %(table)s
            """,
            {"table": self.get_table_name(logical_name)},
        )
        return row is not None

    def get_columns(self, logical_name: str) -> list[dict]:
        """Columns of the table in ordinal order, as dicts with name, type and nullable."""
        return self.executor.fetch_all(
            """
            SELECT column_name AS name, data_type AS type, is_nullable = 'YES' AS nullable
            FROM information_schema.columns
            WHERE table_schema = current_schema() AND table_name = %(table)s
            ORDER BY ordinal_position
            """,
            {"table": self.get_table_name(logical_name)},
        )

    def get_primary_key(self, logical_name: str) -> list[str]:
        """Primary-key column names in constraint order; empty when the table has none."""
        rows = self.executor.fetch_all(
            """
            SELECT kcu.column_name AS name
            FROM information_schema.table_constraints tc
            JOIN information_schema.key_column_usage kcu
              ON kcu.constraint_name = tc.constraint_name
             AND kcu.table_schema = tc.table_schema
             AND kcu.table_name = tc.table_name
            WHERE tc.constraint_type = 'PRIMARY KEY'
              AND tc.table_schema = current_schema()
              AND tc.table_name = %(table)s
            ORDER BY kcu.ordinal_position
            """,
            {"table": self.get_table_name(logical_name)},
        )
        return [row["name"] for row in rows]

    def create_table(
        self,
        logical_name: str,
        columns: Mapping[str, str],
        primary_key: Sequence[str],
    ) -> None:
        """
        Create a table if it does not exist yet.

        Args:
            logical_name: Table name before prefix resolution
            columns: Column name to SQL type declaration, e.g. {"id": "serial"}
            primary_key: Key columns, in order
        """
        definitions = [
            sql.SQL("{} {}").format(sql.Identifier(name), sql.SQL(declaration))
            for name, declaration in columns.items()
        ]
        definitions.append(
            sql.SQL("PRIMARY KEY ({})").format(
                sql.SQL(", ").join(sql.Identifier(k) for k in primary_key)
            )
        )
        table = self.get_table_name(logical_name)
        logger.info("Creating table %s", table)
        self.executor.execute(
            sql.SQL("CREATE TABLE IF NOT EXISTS {} ({})").format(
                sql.Identifier(table), sql.SQL(", ").join(definitions)
            )
        )

    def drop_table(self, logical_name: str) -> None:
        table = self.get_table_name(logical_name)
        logger.info("Dropping table %s", table)
        self.executor.execute(sql.SQL("DROP TABLE IF EXISTS {}").format(sql.Identifier(table)))

    def validate(self, descriptor: EntityDescriptor) -> None:
        """
        Check that the descriptor's table exists with the same primary key.

        Raises:
            SchemaMismatch: If the table is missing or its key differs
        """
        table = self.get_table_name(descriptor.table_name)
        if not self.table_exists(descriptor.table_name):
            raise SchemaMismatch(f"Table '{table}' does not exist")

        actual = self.get_primary_key(descriptor.table_name)
        if actual != list(descriptor.primary_key):
            raise SchemaMismatch(
                f"Table '{table}' has primary key {actual}, "
                f"entity declares {list(descriptor.primary_key)}"
            )
