from gymdesk.store import EntityStore, MongoEntityStore, SqlEntityStore
from gymdesk.utils import Logger
from .settings import Settings, settings

logger = Logger("database")


def build_store(config: Settings) -> EntityStore:
    """Instantiate the backend named by ``store_backend``."""
    backend = config.store_backend.lower()
    if backend == "mongo":
        return MongoEntityStore(config.mongodb_uri, config.database_name)
    if backend == "sql":
        return SqlEntityStore(config.sql_url, echo=config.sql_echo)
    raise ValueError(f"Unknown store backend '{config.store_backend}'")


class StoreManager:
    """Entity store manager: true singleton."""

    _instance = None
    _store: EntityStore | None = None
    _connected: bool = False

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def use(self, store: EntityStore) -> None:
        """Swap in a pre-built store (tests, scripts)."""
        self.close()
        self._store = store

    async def connect(self) -> None:
        if self._connected:
            return
        if self._store is None:
            self._store = build_store(settings)
        try:
            await self._store.connect()
            self._connected = True
        except Exception as e:
            self._connected = False
            logger.error(f"Failed to connect {self._store.backend} store: {e}")
            raise

    def close(self) -> None:
        if self._store is not None and self._connected:
            self._store.close()
        self._connected = False

    @property
    def store(self) -> EntityStore:
        if self._store is None or not self._connected:
            raise RuntimeError("Store not connected. Call connect() first.")
        return self._store

    @property
    def is_connected(self) -> bool:
        return self._connected


# ── Module-level singleton ──────────────────────────────────────
store_manager = StoreManager()


async def get_store() -> EntityStore:
    """FastAPI dependency: returns the connected entity store."""
    if not store_manager.is_connected:
        await store_manager.connect()
    return store_manager.store
