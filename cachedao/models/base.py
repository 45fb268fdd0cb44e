"""Base model: a property bag for one persisted record.

Subclasses declare their primary key field, optional declared field names and
fields to leave out of the persisted state:

    class Article(Model):
        dao_class = ArticleDao
        fields = ("id", "title", "body")
        ignore_fields = ("rendered_body",)

Models without declared `fields` accept any field name.
"""

import logging
from collections.abc import Iterator, Mapping
from typing import Any, ClassVar

from cachedao.exceptions import UndefinedFieldError

logger = logging.getLogger(__name__)


class Model:
    """One persisted record, stored as an ordered field mapping."""

    id_field: ClassVar[str] = "id"
    fields: ClassVar[tuple[str, ...]] = ()
    ignore_fields: ClassVar[tuple[str, ...]] = ()

    def __init__(self, state: Mapping[str, Any] | None = None):
        self._state: dict[str, Any] = {name: None for name in self.declared_fields()}
        self._disallow_undefined = False
        if state:
            self.load_state(state)

    @classmethod
    def declared_fields(cls) -> tuple[str, ...]:
        """Declared field names, including those contributed by mixins."""
        names: list[str] = []
        for klass in reversed(cls.__mro__):
            for name in klass.__dict__.get("fields", ()):
                if name not in names:
                    names.append(name)
        return tuple(names)

    @classmethod
    def validate_state(cls, data: Mapping[str, Any]) -> None:
        """Check a mapping against the declared fields before loading it.

        Raises:
            UndefinedFieldError: Some keys are not declared on the model.
        """
        declared = cls.declared_fields()
        if not declared:
            return
        unknown = [name for name in data if name not in declared]
        if unknown:
            raise UndefinedFieldError(cls.__name__, unknown)

    def get(self, name: str, default: Any = False) -> Any:
        """Get a field value, or `default` (False) if the field does not exist."""
        return self._state.get(name, default)

    def set(self, name: str, value: Any) -> "Model":
        """Set a field value.

        In strict mode, setting a field the model does not declare logs a
        warning and leaves the model untouched.
        """
        if self._disallow_undefined and name not in self._state:
            logger.warning(f'Setting undefined property "{name}" on model "{type(self).__name__}"')
            return self
        self._state[name] = value
        return self

    def load_state(self, data: Mapping[str, Any]) -> "Model":
        for name, value in data.items():
            self.set(name, value)
        return self

    def get_state(self) -> dict[str, Any]:
        """Get the persistable state, without ignored fields."""
        ignore = set(self.ignore_fields)
        return {name: value for name, value in self._state.items() if name not in ignore}

    def to_dict(self) -> dict[str, Any]:
        return self.get_state()

    def get_id(self) -> Any:
        value = self.get(self.id_field, None)
        return None if value is False else value

    def disallow_undefined_properties(self, disallow: bool = True) -> "Model":
        """Toggle strict mode for fields the model does not declare."""
        self._disallow_undefined = disallow
        return self

    # Mapping-style access

    def __getitem__(self, name: str) -> Any:
        return self.get(name)

    def __setitem__(self, name: str, value: Any) -> None:
        self.set(name, value)

    def __contains__(self, name: object) -> bool:
        return name in self._state

    def __iter__(self) -> Iterator[str]:
        return iter(self.get_state())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Model):
            return NotImplemented
        return type(self) is type(other) and self.get_state() == other.get_state()

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.get_state()!r})"
