"""Stores wrapping the external clients.

Stores handle:
- SQL: engine construction, table reflection (SQLAlchemy)
- Redis: key-value cache with batched get/set
- MongoDB: client/database construction, ObjectId conversion
- Search: Elasticsearch REST client (httpx)

No cache-aside logic in stores - that belongs in the DAOs.
"""
