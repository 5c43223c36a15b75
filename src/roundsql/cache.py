"""
Caching of discovered catalog metadata.

Table columns and stored procedure parameters are kept per connection in
cachetools TTL caches, keyed by the lowercased object name, so rediscovering
a model does not repeat the catalog query until the entry expires.
"""
import logging
import threading

import cachetools

logger = logging.getLogger(__name__)

SCHEMA = 'schema'
PROCEDURE = 'procedure'


class Cache:
    """Process-wide registry of metadata caches.

    Caches are created on first use and named `<kind>_<connection cache_id>`.
    """

    _instance = None
    _caches: dict[str, cachetools.TTLCache] = {}
    _lock = threading.RLock()

    @classmethod
    def get_instance(cls) -> 'Cache':
        """Get singleton instance."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    def get_cache(self, name: str, maxsize: int = 100, ttl: int = 600) -> cachetools.TTLCache:
        """Named TTL cache, created with `maxsize` and `ttl` if it does not exist.
        """
        with self._lock:
            cache = self._caches.get(name)
            if cache is None:
                cache = self._caches[name] = cachetools.TTLCache(maxsize=maxsize, ttl=ttl)
                logger.debug(f'Created metadata cache {name} (ttl={ttl}s)')
        return cache

    def _metadata_cache(self, kind: str, connection_id: int | None, ttl: int) -> cachetools.TTLCache:
        suffix = connection_id if connection_id is not None else 'global'
        return self.get_cache(f'{kind}_{suffix}', maxsize=256, ttl=ttl)

    def get_schema_cache(self, connection_id: int | None = None,
                         ttl: int = 600) -> cachetools.TTLCache:
        """Column descriptors by lowercased table name for one connection.
        """
        return self._metadata_cache(SCHEMA, connection_id, ttl)

    def get_procedure_cache(self, connection_id: int | None = None,
                            ttl: int = 600) -> cachetools.TTLCache:
        """Declared parameters by lowercased procedure name for one connection.
        """
        return self._metadata_cache(PROCEDURE, connection_id, ttl)

    def clear_all(self) -> None:
        with self._lock:
            for cache in self._caches.values():
                cache.clear()

    def drop_connection(self, connection_id: int) -> None:
        """Remove the caches of a closed connection."""
        with self._lock:
            for kind in (SCHEMA, PROCEDURE):
                if self._caches.pop(f'{kind}_{connection_id}', None) is not None:
                    logger.debug(f'Dropped metadata cache {kind}_{connection_id}')

    def clear_for_table(self, table_name: str) -> None:
        """Drop one table's columns from the schema cache of every connection.
        """
        key = table_name.lower()
        with self._lock:
            for name, cache in self._caches.items():
                if name.startswith(f'{SCHEMA}_') and cache.pop(key, None) is not None:
                    logger.debug(f'Cleared cached columns of {table_name} in {name}')
