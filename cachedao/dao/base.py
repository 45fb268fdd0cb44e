"""Cache-aside DAO shared by every storage backend.

Flow for reads (fetch_by_ids):
1. Batched cache read for all requested IDs
2. One batched backend read for the cache misses only
3. Backfill the cache with what the backend found
4. Return entities in the requested order; unknown IDs are dropped

Writes go to the backend, then evict the cache entry and push the model to
the search index. Deletes remove the search document, the row, then the
cache entry.
"""

import logging
from collections.abc import Iterable, Mapping
from datetime import date, datetime, time
from typing import Any, ClassVar, Protocol

from cachedao.exceptions import SearchError, ServiceNotFound
from cachedao.models.base import Model
from cachedao.models.date_aware import TIMESTAMP_FORMAT
from cachedao.models.indexable import Indexable
from cachedao.registry import SERVICE_CACHE, SERVICE_SEARCH, ServiceRegistry, get_registry

logger = logging.getLogger(__name__)

# Marks a dependency that was not injected and must come from the registry
_UNSET: Any = object()


def to_cache_value(value: Any) -> Any:
    """Reduce a stored value to the JSON type it has after a cache round-trip.

    Store rows go through this before they are cached or materialized, so an
    entity has the same field types on a cache hit and on a miss.
    """
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, datetime):
        return value.strftime(TIMESTAMP_FORMAT)
    if isinstance(value, (date, time)):
        return value.isoformat()
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8", "surrogateescape")
    if isinstance(value, Mapping):
        return {str(key): to_cache_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_cache_value(item) for item in value]
    # Decimal, ObjectId, UUID, ...
    return str(value)


class Backend(Protocol):
    """Storage operations a DAO needs from its primary store."""

    def read(self, ids: list[Any]) -> dict[Any, dict[str, Any]]:
        """Read rows for the given IDs in one round-trip, keyed by ID."""
        ...

    def write_one(self, model: Model) -> bool:
        ...

    def delete_one(self, model_id: Any) -> bool:
        ...

    def count(self) -> int:
        ...

    def list_ids(self, limit: int, offset: int) -> list[Any]:
        ...


class Dao:
    """Cache-aside data access for one model class.

    Subclasses provide the storage backend through `_create_backend()`.
    """

    model: ClassVar[type[Model]] = Model
    id_field: ClassVar[str | None] = None

    def __init__(
        self,
        model: type[Model] | None = None,
        *,
        cache: Any = _UNSET,
        search: Any = _UNSET,
        backend: Backend | None = None,
        registry: ServiceRegistry | None = None,
        cache_prefix: str | None = None,
    ):
        """Initialize DAO.

        Args:
            model: Model class to materialize (defaults to the class attribute).
            cache: Cache handle; resolved from the registry when omitted.
            search: Search client; resolved from the registry when omitted.
                Pass None to disable index sync.
            backend: Storage backend; built by the subclass when omitted.
            registry: Registry to resolve services from (default: process-wide).
            cache_prefix: Cache key namespace; defaults to the model's dotted name.
        """
        if model is not None:
            self.model = model
        self.registry = registry or get_registry()
        self._cache = cache
        self._search = search
        self._backend = backend
        self.cache_prefix = cache_prefix or f"{self.model.__module__}.{self.model.__qualname__}:"

    @property
    def primary_key(self) -> str:
        """Name of the field holding the entity ID."""
        return self.id_field or self.model.id_field

    # ============================================================
    # Service access
    # ============================================================

    def get_cache(self) -> Any:
        if self._cache is _UNSET:
            self._cache = self.registry.resolve(SERVICE_CACHE)
        return self._cache

    def get_search_service(self) -> Any | None:
        """Get the search client, or None if search is not configured."""
        if self._search is _UNSET:
            try:
                self._search = self.registry.resolve(SERVICE_SEARCH)
            except ServiceNotFound:
                return None
        return self._search

    def get_backend(self) -> Backend:
        if self._backend is None:
            self._backend = self._create_backend()
        return self._backend

    def _create_backend(self) -> Backend:
        raise NotImplementedError("Subclasses must implement _create_backend")

    # ============================================================
    # Cache keys
    # ============================================================

    def cache_key(self, model_id: Any) -> str:
        return f"{self.cache_prefix}{model_id}"

    def prefix_keys(self, ids: Iterable[Any]) -> list[str]:
        return [self.cache_key(model_id) for model_id in ids]

    # ============================================================
    # Reads
    # ============================================================

    def fetch(self, model_id: Any) -> Model | bool:
        """Fetch one entity.

        Returns:
            The entity, or False if it does not exist.
        """
        found = self.fetch_by_ids([model_id])
        return next(iter(found.values()), False)

    def fetch_by_ids(self, ids: Iterable[Any]) -> dict[Any, Model]:
        """Fetch several entities, from cache where possible.

        Args:
            ids: IDs in the order the result should follow.

        Returns:
            Mapping of ID -> entity in request order. IDs found neither in
            the cache nor in the store are left out.
        """
        ids = list(ids)
        if not ids:
            return {}

        # Cache key -> the caller's ID; the backend gets IDs as they were given
        requested = {self.cache_key(model_id): model_id for model_id in ids}

        cache = self.get_cache()
        result: dict[str, Any] = dict(cache.get_multi(list(requested)) or {})

        missing = [key for key in requested if key not in result]
        if missing:
            rows = self.get_backend().read([requested[key] for key in missing])
            if rows:
                filled = {self.cache_key(row_id): to_cache_value(row) for row_id, row in rows.items()}
                cache.set_multi(filled)
                result.update(filled)
            logger.debug(
                f"{self.model.__name__}: {len(requested) - len(missing)} cache hits, "
                f"{len(missing)} misses, {len(rows)} read from store"
            )

        if not result:
            return {}

        ordered: dict[Any, Any] = {}
        for model_id in ids:
            key = self.cache_key(model_id)
            if key in result:
                ordered[model_id] = result[key]

        return self.create_instances(ordered)

    def fetch_entries(self, limit: int = 50, offset: int = 0) -> dict[Any, Model]:
        """Fetch a page of entities (IDs from the store, rows through the cache)."""
        ids = self.get_backend().list_ids(limit, offset)
        return self.fetch_by_ids(ids) if ids else {}

    def get_number_of_entries(self) -> int:
        return self.get_backend().count()

    def get_ids_from_models(self, models: Iterable[Model]) -> list[Any]:
        """Get the unique IDs of the given models, in order of appearance."""
        ids: list[Any] = []
        for model in models:
            model_id = model.get(self.primary_key, None)
            if model_id not in ids:
                ids.append(model_id)
        return ids

    def create_instance(self, state: Mapping[str, Any]) -> Model:
        return self.model(state)

    def create_instances(self, elements: Mapping[Any, Mapping[str, Any]]) -> dict[Any, Model]:
        return {key: self.create_instance(state) for key, state in elements.items()}

    # ============================================================
    # Writes
    # ============================================================

    def save(self, model: Model) -> bool:
        """Insert or update a model.

        On success the cache entry is evicted and the model is pushed to the
        search index (index failures do not fail the save).
        """
        saved = self.get_backend().write_one(model)
        if saved:
            self.expire(model.get(self.primary_key, None))
            self.index_model(model)
        return saved

    def delete(self, model: Model) -> bool:
        """Delete a model from the search index, the store and the cache."""
        self.delete_indexed_model(model)

        model_id = model.get(self.primary_key, None)
        if model_id is None or model_id == "":
            return False

        try:
            return self.get_backend().delete_one(model_id)
        finally:
            self.expire(model_id)

    def expire(self, ids: Any) -> int:
        """Evict cache entries.

        Args:
            ids: A single ID, a list/tuple/set of IDs, or a model.

        Returns:
            Number of keys that were actually deleted.
        """
        if isinstance(ids, Model):
            ids = [ids.get(self.primary_key, None)]
        elif not isinstance(ids, (list, tuple, set, frozenset)):
            ids = [ids]

        cache = self.get_cache()
        expired = 0
        for key in self.prefix_keys(ids):
            if cache.delete(key):
                expired += 1
        return expired

    # ============================================================
    # Search index sync
    # ============================================================

    def index_model(self, model: Model) -> bool:
        """Add or replace the model's document in the search index.

        Returns:
            True if the document was pushed, False if the model is not
            indexable, search is unavailable, or the push failed.
        """
        if not isinstance(model, Indexable):
            return False

        client = self.get_search_service()
        document = model.get_indexable_document()
        if not client or not document:
            return False

        try:
            client.get_index(model.get_index_name()).get_type(model.get_index_type()).add_document(document)
        except SearchError as e:
            logger.warning(str(e))
            logger.warning(
                f'Failed to add document from model "{type(model).__name__}" to search index '
                f"(index: {model.get_index_name()}, type: {model.get_index_type()})"
            )
            return False

        return True

    def delete_indexed_model(self, model: Model) -> bool:
        """Remove the model's document from the search index."""
        if not isinstance(model, Indexable):
            return False

        client = self.get_search_service()
        if not client:
            return False

        try:
            document = model.get_indexable_document()
            doc_id = document.id if document else model.get(self.primary_key, None)
            client.get_index(model.get_index_name()).get_type(model.get_index_type()).delete_by_id(doc_id)
        except SearchError as e:
            logger.warning(
                f'Failed to remove document from model "{type(model).__name__}" from search index '
                f"(index: {model.get_index_name()}, type: {model.get_index_type()})"
            )
            logger.warning(str(e))
            return False

        return True
