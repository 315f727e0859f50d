from .settings import Settings, settings
from .database import StoreManager, build_store, get_store, store_manager

__all__ = ["Settings", "settings", "StoreManager", "build_store", "get_store", "store_manager"]
