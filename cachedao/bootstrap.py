"""Service bootstrap.

Registers lazy factories for every service the DAOs resolve, so nothing
connects until a DAO first needs it.
"""

import logging

from cachedao.registry import (
    MODE_RO,
    MODE_RW,
    SERVICE_CACHE,
    SERVICE_MONGO,
    SERVICE_SEARCH,
    SERVICE_SQL,
    ServiceRegistry,
    get_registry,
)
from cachedao.settings import Settings, get_settings
from cachedao.stores.mongo import create_mongo_database
from cachedao.stores.redis import RedisCache, create_redis_client
from cachedao.stores.search import SearchClient
from cachedao.stores.sql import create_sql_engine

logger = logging.getLogger(__name__)


def register_default_services(
    settings: Settings | None = None,
    registry: ServiceRegistry | None = None,
) -> ServiceRegistry:
    """Register SQL, cache, MongoDB and search factories from settings.

    Search is only registered when `search_url` is set.
    """
    settings = settings or get_settings()
    registry = registry or get_registry()

    registry.register(SERVICE_SQL, lambda: create_sql_engine(settings.database_url), MODE_RW)
    registry.register(
        SERVICE_SQL,
        lambda: create_sql_engine(settings.read_only_database_url, read_only=True),
        MODE_RO,
    )
    registry.register(
        SERVICE_CACHE,
        lambda: RedisCache(create_redis_client(settings.redis_url), ttl=settings.cache_ttl),
    )
    registry.register(
        SERVICE_MONGO,
        lambda: create_mongo_database(settings.mongo_url, settings.mongo_database),
        MODE_RW,
    )
    if settings.search_url:
        registry.register(SERVICE_SEARCH, lambda: SearchClient(settings.search_url, settings.search_timeout))
    else:
        logger.info("Search URL not configured, index sync disabled")

    return registry
