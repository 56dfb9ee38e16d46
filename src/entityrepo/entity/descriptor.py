from dataclasses import dataclass
from typing import Any, Callable, Mapping, Sequence

from entityrepo.entity.data import Data


@dataclass(frozen=True)
class EntityDescriptor:
    """
    Fixed configuration of one concrete repository.

    Attributes:
        table_name: Logical table name, resolved to a physical name by the executor
        primary_key: Ordered key attributes; the first one receives scalar keys
        factory: Builds an entity instance from a row mapping
    """

    table_name: str
    primary_key: Sequence[str]
    factory: Callable[[Mapping[str, Any]], Any] = Data

    def __post_init__(self):
        if not self.table_name:
            raise ValueError("Entity table name must not be empty")
        if isinstance(self.primary_key, str):
            object.__setattr__(self, "primary_key", (self.primary_key,))
        else:
            object.__setattr__(self, "primary_key", tuple(self.primary_key))
        if not self.primary_key:
            raise ValueError(f"Entity '{self.table_name}' must declare at least one key attribute")
        if not all(self.primary_key):
            raise ValueError(f"Entity '{self.table_name}' has an empty key attribute name")

    @property
    def first_key_attribute(self) -> str:
        return self.primary_key[0]

    @property
    def is_composite(self) -> bool:
        return len(self.primary_key) > 1
