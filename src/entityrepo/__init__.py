from entityrepo.entity import Data, EntityDescriptor
from entityrepo.errors import (
    InvalidPrimaryKey,
    MissingKeyAttribute,
    RepositoryError,
    SchemaMismatch,
)
from entityrepo.query import PgQueryExecutor, QueryExecutor, Select
from entityrepo.repository import EntityRepository
from entityrepo.schema import SchemaAccessor

__all__ = [
    "Data",
    "EntityDescriptor",
    "EntityRepository",
    "InvalidPrimaryKey",
    "MissingKeyAttribute",
    "PgQueryExecutor",
    "QueryExecutor",
    "RepositoryError",
    "SchemaAccessor",
    "SchemaMismatch",
    "Select",
]
