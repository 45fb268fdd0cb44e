"""Model base classes and capabilities.

- Model: property bag for one persisted record
- DateAwareModel: created/updated timestamp mixin
- Indexable / IndexableDocument: search index capability
"""

from cachedao.models.base import Model
from cachedao.models.date_aware import DateAwareModel, parse_timestamp
from cachedao.models.indexable import Indexable, IndexableDocument

__all__ = ["DateAwareModel", "Indexable", "IndexableDocument", "Model", "parse_timestamp"]
