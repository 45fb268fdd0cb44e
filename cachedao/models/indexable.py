"""Search index capability for models.

A model participates in index sync by implementing the `Indexable` protocol;
models that don't are skipped by the DAO.
"""

from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, Field


class IndexableDocument(BaseModel):
    """Document pushed to the search index."""

    id: str | int
    data: dict[str, Any] = Field(default_factory=dict)


@runtime_checkable
class Indexable(Protocol):
    def get_indexable_document(self) -> IndexableDocument | None:
        ...

    def get_index_name(self) -> str:
        ...

    def get_index_type(self) -> str:
        ...
