from .routes import members_router

__all__ = ["members_router"]
