"""Service registry and DAO factory.

Handles:
- Service handles keyed by (type, mode): SQL engines, cache, Mongo, search
- Lazy factories, evaluated once and memoized (thread-safe)
- One memoized DAO instance per model class

DAOs accept their handles directly as constructor arguments; the registry is
the fallback when a handle was not injected.
"""

import functools
import inspect
import logging
import threading
from collections.abc import Callable
from typing import Any

from cachedao.exceptions import ServiceNotFound

logger = logging.getLogger(__name__)

# Service types
SERVICE_SQL = "sql"
SERVICE_MONGO = "mongo"
SERVICE_CACHE = "cache"
SERVICE_SEARCH = "search"

# Database access modes
MODE_RO = "RO"
MODE_RW = "RW"


def _is_factory(service: Any) -> bool:
    """Plain functions, lambdas, bound methods and partials are treated as factories."""
    return (
        inspect.isfunction(service)
        or inspect.ismethod(service)
        or isinstance(service, functools.partial)
    )


class ServiceRegistry:
    """Holds service handles or zero-argument factories per (type, mode)."""

    def __init__(self) -> None:
        self._services: dict[tuple[str, str], Any] = {}
        self._factories: dict[tuple[str, str], Callable[[], Any]] = {}
        self._lock = threading.RLock()

    def register(
        self,
        service_type: str,
        service: Any,
        mode: str = "",
        *,
        lazy: bool | None = None,
    ) -> None:
        """Register a service instance or factory, replacing any previous one.

        Args:
            service_type: One of the SERVICE_* constants (or any custom name).
            service: Handle instance, or a zero-argument callable producing it.
            mode: Optional mode (MODE_RO / MODE_RW for databases).
            lazy: Force factory (True) or instance (False) handling. By default
                functions, methods and partials are treated as factories.
        """
        key = (service_type, mode)
        is_factory = _is_factory(service) if lazy is None else lazy
        with self._lock:
            self._services.pop(key, None)
            self._factories.pop(key, None)
            if is_factory:
                self._factories[key] = service
            else:
                self._services[key] = service
        logger.info(f"Registered service {service_type}{mode} ({'factory' if is_factory else 'instance'})")

    def resolve(self, service_type: str, mode: str = "") -> Any:
        """Get the handle registered for (type, mode).

        Raises:
            ServiceNotFound: Nothing was registered for the pair.
        """
        key = (service_type, mode)
        with self._lock:
            if key in self._services:
                return self._services[key]
            factory = self._factories.get(key)
            if factory is None:
                raise ServiceNotFound(service_type, mode)
            # Held lock: concurrent first resolutions share one construction.
            service = factory()
            self._services[key] = service
            del self._factories[key]
            return service

    def is_registered(self, service_type: str, mode: str = "") -> bool:
        key = (service_type, mode)
        with self._lock:
            return key in self._services or key in self._factories

    def unregister(self, service_type: str, mode: str = "") -> None:
        key = (service_type, mode)
        with self._lock:
            self._services.pop(key, None)
            self._factories.pop(key, None)

    def clear(self) -> None:
        """Drop every registration (for testing only)."""
        with self._lock:
            self._services.clear()
            self._factories.clear()


# Process-wide default registry
_registry = ServiceRegistry()


def get_registry() -> ServiceRegistry:
    """Get the process-wide registry."""
    return _registry


def get_service_layer(service_type: str, mode: str = "") -> Any:
    """Resolve a service from the default registry."""
    return _registry.resolve(service_type, mode)


def set_service_layer(service_type: str, service: Any, mode: str = "", *, lazy: bool | None = None) -> None:
    """Register a service in the default registry."""
    _registry.register(service_type, service, mode, lazy=lazy)


# ============================================================
# DAO factory
# ============================================================

_daos: dict[type, Any] = {}
_daos_lock = threading.Lock()


def get_dao(model_cls: type) -> Any:
    """Get the memoized DAO instance for a model class.

    The model class names its DAO through a `dao_class` attribute; the DAO is
    constructed with `model=model_cls` and reused on subsequent calls.
    """
    with _daos_lock:
        dao = _daos.get(model_cls)
        if dao is None:
            dao_class = getattr(model_cls, "dao_class", None)
            if dao_class is None:
                raise TypeError(f"Model {model_cls.__name__} does not declare a dao_class")
            dao = dao_class(model=model_cls)
            _daos[model_cls] = dao
        return dao


def reset_daos() -> None:
    """Forget memoized DAO instances (for testing only)."""
    with _daos_lock:
        _daos.clear()
