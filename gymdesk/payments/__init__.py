from .routes import payments_router

__all__ = ["payments_router"]
