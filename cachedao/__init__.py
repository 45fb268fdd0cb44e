"""Cache-aside data access objects.

Relational (SQLAlchemy) and document (MongoDB) storage behind one DAO
interface, with a Redis cache in front and optional search index sync.
"""

from cachedao.dao import Dao, MongoDao, SqlDao
from cachedao.exceptions import DaoError, PersistenceError, SearchError, ServiceNotFound, UndefinedFieldError
from cachedao.models import DateAwareModel, Indexable, IndexableDocument, Model
from cachedao.registry import (
    MODE_RO,
    MODE_RW,
    SERVICE_CACHE,
    SERVICE_MONGO,
    SERVICE_SEARCH,
    SERVICE_SQL,
    ServiceRegistry,
    get_dao,
    get_registry,
    get_service_layer,
    set_service_layer,
)

__all__ = [
    "MODE_RO",
    "MODE_RW",
    "SERVICE_CACHE",
    "SERVICE_MONGO",
    "SERVICE_SEARCH",
    "SERVICE_SQL",
    "Dao",
    "DaoError",
    "DateAwareModel",
    "Indexable",
    "IndexableDocument",
    "Model",
    "MongoDao",
    "PersistenceError",
    "SearchError",
    "ServiceNotFound",
    "ServiceRegistry",
    "SqlDao",
    "UndefinedFieldError",
    "get_dao",
    "get_registry",
    "get_service_layer",
    "set_service_layer",
]
