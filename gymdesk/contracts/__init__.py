from .routes import contracts_router

__all__ = ["contracts_router"]
