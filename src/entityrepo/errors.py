class RepositoryError(Exception):
    """Base class for errors raised by entity repositories."""


class MissingKeyAttribute(RepositoryError):
    """A primary-key attribute is absent from the data given to a key-dependent operation."""

    def __init__(self, attribute: str, entity: str | None = None):
        self.attribute = attribute
        self.entity = entity
        where = f" for entity '{entity}'" if entity else ""
        super().__init__(f"Cannot find value for primary key part '{attribute}' in given data{where}.")


class InvalidPrimaryKey(RepositoryError, ValueError):
    """The key argument cannot address a row of the entity."""


class SchemaMismatch(RepositoryError):
    """The physical table does not match the entity descriptor."""
