import logging
from typing import Any, Generic, Iterable, Mapping, TypeVar

import pandas as pd

from entityrepo.entity import Data, EntityDescriptor
from entityrepo.errors import InvalidPrimaryKey, MissingKeyAttribute
from entityrepo.query import QueryExecutor, Select, equals
from entityrepo.query.select import Fragment, fragments_of
from entityrepo.schema import SchemaAccessor

logger = logging.getLogger(__name__)

E = TypeVar("E")

Record = Mapping[str, Any]
Where = Fragment | Iterable[Fragment] | None


class EntityRepository(Generic[E]):
    """
    Generic CRUD over one table.

    Concrete repositories declare their descriptor as a class attribute:

        class UserRepository(EntityRepository[User]):
            descriptor = EntityDescriptor("user", ["id"], User)

    or pass one at construction for ad-hoc tables. Key arguments are either
    a scalar (single-attribute keys only) or a mapping of key attribute to
    value. Write operations accept a record mapping or a Data instance.
    """

    descriptor: EntityDescriptor | None = None

    def __init__(
        self,
        executor: QueryExecutor,
        schema: SchemaAccessor | None = None,
        descriptor: EntityDescriptor | None = None,
    ):
        self.executor = executor
        self.schema = schema or SchemaAccessor(executor)
        if descriptor is not None:
            self.descriptor = descriptor
        if self.descriptor is None:
            raise TypeError(f"{type(self).__name__} has no entity descriptor")

    # =========================================================================
    # Create / Read
    # =========================================================================

    def create(self, data: Record | Data) -> Any:
        """
        Insert a new row.

        Returns:
            The generated key: a scalar for single-attribute keys, a mapping of
            key attributes for composite keys. None if no row was inserted.
        """
        record = self._to_record(data)
        table = self.schema.get_table_name(self.descriptor.table_name)

        added = self.executor.insert(table, record)
        if not added:
            logger.debug("No row inserted into %s", table)
            return None

        if self.descriptor.is_composite:
            return {
                attr: self.executor.last_insert_id(table, attr)
                for attr in self.descriptor.primary_key
            }
        return self.executor.last_insert_id(table, self.descriptor.first_key_attribute)

    def get_one(self, pk: Any) -> E | None:
        """Fetch the entity with the given key, or None."""
        key = self.normalize_pk(pk)
        query = self._select().where([equals(field) for field in key])

        found = self.executor.fetch_row(query, key)
        if not found:
            return None
        return self._compose(found)

    def get_set(
        self,
        where: Where = None,
        bind: Mapping[str, Any] | None = None,
        order: Where = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[E]:
        """
        Fetch all entities matching a predicate.

        Args:
            where: Predicate fragment(s) with %(name)s placeholders, ANDed together
            bind: Values for the placeholders in `where`
            order: ORDER BY fragment(s), e.g. "name DESC"
            limit: Maximum number of rows
            offset: Rows to skip; only applied together with `limit`

        Returns:
            Entities in storage order unless `order` is given. Empty list if none match.
        """
        query = self._filtered(where, order, limit, offset)
        return [self._compose(row) for row in self.executor.fetch_all(query, bind)]

    def get_frame(
        self,
        where: Where = None,
        bind: Mapping[str, Any] | None = None,
        order: Where = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> pd.DataFrame:
        """Same as get_set() but returns the rows as a pandas DataFrame."""
        query = self._filtered(where, order, limit, offset)
        return self.executor.fetch_dataframe(query, bind)

    # =========================================================================
    # Update
    # =========================================================================

    def update_one(self, data: Record | Data) -> int:
        """Update the row addressed by the key fields contained in `data`."""
        return self.update_by_pk(data)

    def update_by_pk(self, data: Record | Data, pk: Any = None) -> int:
        """
        Update one row by primary key.

        The key comes from `pk` when given (scalar or mapping), otherwise from
        `data`. Key fields present in `data` are never assigned.

        Returns:
            Affected-row count as reported by the database
        """
        record = self._to_record(data)
        key = self.extract_pk(record) if pk is None else self.normalize_pk(pk)

        key_fields = set(key) | set(self.descriptor.primary_key)
        values = {field: value for field, value in record.items() if field not in key_fields}
        if not values:
            logger.warning(
                "Nothing to update in %s for key %s, only key fields given",
                self.descriptor.table_name,
                key,
            )
            return 0

        return self.executor.update(
            self._table(), values, [equals(field) for field in key], key
        )

    def update_set(
        self, data: Record | Data, where: Where, bind: Mapping[str, Any] | None = None
    ) -> int:
        """
        Assign the fields of `data` on every row matching `where`.

        Raises:
            ValueError: If `where` is empty
        """
        predicates = self._require_predicates(where, "update")
        return self.executor.update(self._table(), self._to_record(data), predicates, bind)

    # =========================================================================
    # Delete
    # =========================================================================

    def delete_one(self, pk: Any) -> int:
        """Delete the row addressed by a scalar key, key mapping or full entity."""
        if isinstance(pk, (Mapping, Data)):
            key = self.extract_pk(pk)
        else:
            key = self.normalize_pk(pk)
        return self.executor.delete(self._table(), [equals(field) for field in key], key)

    def delete_set(self, where: Where, bind: Mapping[str, Any] | None = None) -> int:
        """
        Delete every row matching `where`.

        Raises:
            ValueError: If `where` is empty
        """
        predicates = self._require_predicates(where, "delete")
        return self.executor.delete(self._table(), predicates, bind)

    # =========================================================================
    # Primary keys
    # =========================================================================

    def extract_pk(self, data: Record | Data) -> dict[str, Any]:
        """
        Project a record or entity onto the primary-key attributes.

        Raises:
            MissingKeyAttribute: If a key attribute is absent or None
        """
        given = self._to_record(data)
        key = {}
        for attr in self.descriptor.primary_key:
            if given.get(attr) is None:
                raise MissingKeyAttribute(attr, self.descriptor.table_name)
            key[attr] = given[attr]
        return key

    def normalize_pk(self, pk: Any) -> dict[str, Any]:
        """
        Turn a key argument into an attribute -> value mapping.

        Mappings are used as given. Scalars bind to the only key attribute.

        Raises:
            InvalidPrimaryKey: For empty mappings, or scalars against a composite key
        """
        if isinstance(pk, Mapping):
            if not pk:
                raise InvalidPrimaryKey(
                    f"Empty key given for entity '{self.descriptor.table_name}'"
                )
            return dict(pk)

        if self.descriptor.is_composite:
            raise InvalidPrimaryKey(
                f"Entity '{self.descriptor.table_name}' has composite key "
                f"{list(self.descriptor.primary_key)}, pass a mapping instead of {pk!r}"
            )
        return {self.descriptor.first_key_attribute: pk}

    # =========================================================================
    # Helpers
    # =========================================================================

    def _table(self) -> str:
        return self.executor.get_table_name(self.descriptor.table_name)

    def _select(self) -> Select:
        return self.executor.select().from_(self._table(), "*")

    def _filtered(self, where: Where, order: Where, limit: int | None, offset: int | None) -> Select:
        query = self._select()
        if where is not None:
            query.where(where)
        if order is not None:
            query.order(order)
        if limit:
            query.limit(limit, offset)
        elif offset:
            logger.debug("Ignoring offset %s without limit on %s", offset, self.descriptor.table_name)
        return query

    def _compose(self, row: Record) -> E:
        return self.descriptor.factory(row)

    def _require_predicates(self, where: Where, action: str) -> list[Fragment]:
        predicates = fragments_of(where)
        if not predicates:
            raise ValueError(
                f"Refusing to {action} every row of {self.descriptor.table_name}, pass a predicate"
            )
        return predicates

    @staticmethod
    def _to_record(data: Record | Data) -> dict[str, Any]:
        if isinstance(data, Data):
            return data.get_data()
        if isinstance(data, Mapping):
            return dict(data)
        raise TypeError(f"Expected a mapping or Data instance, got {type(data).__name__}")
