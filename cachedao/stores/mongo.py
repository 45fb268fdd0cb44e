"""MongoDB store.

Handles:
- Client/database construction from settings
- Conversion of string IDs to ObjectIds
"""

import logging
from typing import Any

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import MongoClient
from pymongo.database import Database

from cachedao.settings import get_settings

logger = logging.getLogger(__name__)


def create_mongo_database(url: str | None = None, name: str | None = None) -> Database:
    """Create a MongoDB database handle from settings."""
    settings = get_settings()
    client: MongoClient = MongoClient(url or settings.mongo_url)
    logger.info(f"MongoDB client created for database {name or settings.mongo_database}")
    return client[name or settings.mongo_database]


def to_object_id(value: Any) -> Any:
    """Convert a 24-char hex string to an ObjectId; leave anything else as-is."""
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str):
        try:
            return ObjectId(value)
        except InvalidId:
            return value
    return value
