from .routes import employees_router

__all__ = ["employees_router"]
