"""Document-store DAO over pymongo.

Save: a truthy ID updates all other fields with `$set` (fields missing from
the model are left alone); otherwise the document is inserted and the
generated ObjectId is written back as a string. Write failures are logged and
reported as False rather than raised.
"""

import logging
from typing import Any, ClassVar

from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import PyMongoError

from cachedao.dao.base import Dao
from cachedao.models.base import Model
from cachedao.registry import MODE_RW, SERVICE_MONGO
from cachedao.stores.mongo import to_object_id

logger = logging.getLogger(__name__)


def _from_doc(doc: dict[str, Any], id_field: str) -> dict[str, Any]:
    """Convert a MongoDB document to model state (ObjectId -> str)."""
    state = dict(doc)
    if id_field in state:
        state[id_field] = str(state[id_field])
    return state


class MongoBackend:
    """Collection-backed storage for one model class."""

    def __init__(self, collection: Collection, id_field: str = "_id"):
        self.collection = collection
        self.id_field = id_field

    def read(self, ids: list[Any]) -> dict[Any, dict[str, Any]]:
        cursor = self.collection.find({self.id_field: {"$in": [to_object_id(i) for i in ids]}})
        entries: dict[Any, dict[str, Any]] = {}
        for doc in cursor:
            state = _from_doc(doc, self.id_field)
            entries[state[self.id_field]] = state
        return entries

    def list_ids(self, limit: int, offset: int) -> list[Any]:
        cursor = (
            self.collection.find({}, {self.id_field: 1})
            .sort(self.id_field, 1)
            .skip(int(offset))
            .limit(int(limit))
        )
        return [str(doc[self.id_field]) for doc in cursor]

    def count(self) -> int:
        return self.collection.count_documents({})

    def write_one(self, model: Model) -> bool:
        state = model.get_state()
        model_id = model.get(self.id_field, None)

        try:
            if model_id:
                state.pop(self.id_field, None)
                result = self.collection.update_one(
                    {self.id_field: to_object_id(model_id)},
                    {"$set": state},
                )
                return bool(result.acknowledged)

            state.pop(self.id_field, None)
            result = self.collection.insert_one(state)
        except PyMongoError as e:
            logger.warning(str(e))
            logger.warning(f'Failed to save model to collection "{self.collection.name}"')
            logger.warning(repr(state))
            return False

        model.set(self.id_field, str(result.inserted_id))
        return True

    def delete_one(self, model_id: Any) -> bool:
        try:
            result = self.collection.delete_one({self.id_field: to_object_id(model_id)})
        except PyMongoError as e:
            logger.warning(f'Failed to delete {model_id} from collection "{self.collection.name}": {e}')
            return False
        return bool(result.acknowledged)


class MongoDao(Dao):
    """DAO for models stored in a MongoDB collection."""

    collection_name: ClassVar[str] = ""
    id_field: ClassVar[str | None] = "_id"

    def __init__(
        self,
        model: type[Model] | None = None,
        *,
        database: Database | None = None,
        collection: Collection | None = None,
        **kwargs: Any,
    ):
        """Initialize DAO.

        Args:
            model: Model class to materialize.
            database: MongoDB database; resolved as (mongo, RW) when omitted.
            collection: Explicit collection, overriding database/collection_name.
            **kwargs: Passed on to Dao (cache, search, backend, registry, ...).
        """
        super().__init__(model, **kwargs)
        self._database = database
        self._collection = collection

    def get_db(self) -> Database:
        if self._database is None:
            self._database = self.registry.resolve(SERVICE_MONGO, MODE_RW)
        return self._database

    def get_collection(self) -> Collection:
        if self._collection is None:
            if not self.collection_name:
                raise ValueError(f"{type(self).__name__} does not define collection_name")
            self._collection = self.get_db()[self.collection_name]
        return self._collection

    def _create_backend(self) -> MongoBackend:
        return MongoBackend(self.get_collection(), id_field=self.primary_key)
