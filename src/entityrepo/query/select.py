from typing import Iterable, Sequence, Union

from psycopg import sql

# A predicate or ordering fragment: raw SQL text in psycopg's %(name)s
# placeholder style, or an already composed psycopg.sql object.
Fragment = Union[str, sql.Composable]


def as_sql(fragment: Fragment) -> sql.Composable:
    if isinstance(fragment, sql.Composable):
        return fragment
    return sql.SQL(fragment)


def is_blank(fragment: Fragment) -> bool:
    """True for fragments that render to whitespace only."""
    if isinstance(fragment, str):
        return not fragment.strip()
    if isinstance(fragment, sql.SQL):
        return not fragment.string.strip()
    if isinstance(fragment, sql.Composed):
        return all(is_blank(part) for part in fragment.seq)
    return False


def fragments_of(value: Fragment | Iterable[Fragment] | None) -> list[Fragment]:
    """Flatten a single fragment or a collection of fragments into a list, dropping blanks."""
    if value is None:
        return []
    if isinstance(value, (str, sql.Composable)):
        value = [value]
    return [f for f in value if not is_blank(f)]


def conjunction(predicates: Fragment | Iterable[Fragment] | None) -> sql.Composable | None:
    """
    Join predicates with AND.

    Each predicate is parenthesized when there is more than one, so
    fragments containing OR keep their meaning. Returns None when there
    is nothing to filter on.
    """
    fragments = fragments_of(predicates)
    if not fragments:
        return None
    if len(fragments) == 1:
        return as_sql(fragments[0])
    return sql.SQL(" AND ").join(sql.SQL("({})").format(as_sql(f)) for f in fragments)


def equals(field: str, placeholder: str | None = None) -> sql.Composed:
    """Build ``"field" = %(placeholder)s``."""
    return sql.SQL("{} = {}").format(sql.Identifier(field), sql.Placeholder(placeholder or field))


class Select:
    """
    Incremental SELECT builder.

    Usage:
        query = Select().from_("users").where("age > %(age)s").order("name").limit(10)
        executor.fetch_all(query, {"age": 18})
    """

    def __init__(self):
        self.table: str | None = None
        self.columns: str | Sequence[str] = "*"
        self.predicates: list[Fragment] = []
        self.ordering: list[Fragment] = []
        self.row_limit: int | None = None
        self.row_offset: int | None = None

    def from_(self, table: str, columns: str | Sequence[str] = "*") -> "Select":
        self.table = table
        self.columns = columns
        return self

    def where(self, predicate: Fragment | Iterable[Fragment]) -> "Select":
        self.predicates.extend(fragments_of(predicate))
        return self

    def order(self, spec: Fragment | Iterable[Fragment]) -> "Select":
        self.ordering.extend(fragments_of(spec))
        return self

    def limit(self, count: int, offset: int | None = None) -> "Select":
        self.row_limit = count
        self.row_offset = offset
        return self

    def _columns_sql(self) -> sql.Composable:
        if self.columns == "*":
            return sql.SQL("*")
        if isinstance(self.columns, str):
            return sql.Identifier(self.columns)
        return sql.SQL(", ").join(sql.Identifier(c) for c in self.columns)

    def compose(self) -> sql.Composed:
        """Render the builder state as a psycopg composed statement."""
        if self.table is None:
            raise ValueError("Select has no table, call from_() first")

        query = sql.SQL("SELECT {} FROM {}").format(self._columns_sql(), sql.Identifier(self.table))

        condition = conjunction(self.predicates)
        if condition is not None:
            query += sql.SQL(" WHERE ") + condition
        if self.ordering:
            query += sql.SQL(" ORDER BY ") + sql.SQL(", ").join(as_sql(o) for o in self.ordering)
        if self.row_limit is not None:
            query += sql.SQL(" LIMIT {}").format(sql.Literal(int(self.row_limit)))
            if self.row_offset:
                query += sql.SQL(" OFFSET {}").format(sql.Literal(int(self.row_offset)))

        return query
