"""Data access objects.

- Dao: cache-aside reads, cache eviction, search index sync
- SqlDao: relational tables (SQLAlchemy)
- MongoDao: MongoDB collections (pymongo)
"""

from cachedao.dao.base import Backend, Dao
from cachedao.dao.mongo import MongoBackend, MongoDao
from cachedao.dao.sql import SqlBackend, SqlDao

__all__ = ["Backend", "Dao", "MongoBackend", "MongoDao", "SqlBackend", "SqlDao"]
