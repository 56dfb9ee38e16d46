from typing import Any, Iterator, Mapping


class Data:
    """
    Generic holder for entity field values.

    Fields are readable as items (``entity["name"]``) and as attributes
    (``entity.name``). Concrete entities subclass it and usually declare
    their column names as class constants:

        class User(Data):
            ID = "id"
            NAME = "name"
    """

    def __init__(self, data: Mapping[str, Any] | None = None, **fields: Any):
        self._data: dict[str, Any] = {}
        if data:
            self._data.update(data)
        self._data.update(fields)

    def get_data(self) -> dict[str, Any]:
        """Return a copy of the field mapping."""
        return dict(self._data)

    def set_data(self, data: Mapping[str, Any]) -> None:
        """Replace all field values."""
        self._data = dict(data)

    def get(self, field: str, default: Any = None) -> Any:
        return self._data.get(field, default)

    def __getitem__(self, field: str) -> Any:
        return self._data[field]

    def __setitem__(self, field: str, value: Any) -> None:
        self._data[field] = value

    def __contains__(self, field: object) -> bool:
        return field in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __getattr__(self, name: str) -> Any:
        data = self.__dict__.get("_data")
        if data is not None and name in data:
            return data[name]
        raise AttributeError(f"{type(self).__name__!r} has no field {name!r}")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Data):
            return NotImplemented
        return type(self) is type(other) and self._data == other._data

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._data!r})"
