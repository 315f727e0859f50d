"""
Declarative permission decorators for route handlers.

Usage:
    @router.get("/")
    @require_permission(Permission.VIEW_MEMBERS)
    async def list_members(request: Request):
        ...

On success the resolved subject is placed on ``request.state.subject``;
otherwise the gate's denial response is returned as-is.
"""

from functools import wraps
from typing import Awaitable, Callable

from fastapi import HTTPException, status
from starlette.requests import Request

from gymdesk.auth.gate import AuthorizationGate, AuthResult
from gymdesk.config import get_store
from .roles import AccessLevel, Permission


def _find_request(args, kwargs) -> Request:
    request: Request | None = kwargs.get("request")
    if request is None:
        for arg in args:
            if isinstance(arg, Request):
                request = arg
                break

    if request is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Request object not found in handler",
        )
    return request


def _guard(check: Callable[[AuthorizationGate, Request], Awaitable[AuthResult]]):
    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            request = _find_request(args, kwargs)
            gate = AuthorizationGate(await get_store())
            result = await check(gate, request)
            if not result.authorized:
                return result.denial
            request.state.subject = result.subject
            return await func(*args, **kwargs)

        return wrapper

    return decorator


def require_authenticated():
    """Any active, signed-in employee."""
    return _guard(lambda gate, request: gate.authenticate(request))


def require_permission(permission: Permission):
    """
    Decorator that checks the signed-in employee holds ``permission``.

    Must be applied AFTER the route decorator.
    """
    return _guard(lambda gate, request: gate.require_permission(request, permission))


def require_any_permission(*permissions: Permission):
    return _guard(lambda gate, request: gate.require_any_permission(request, permissions))


def require_access_level(min_level: AccessLevel):
    return _guard(lambda gate, request: gate.require_access_level(request, min_level))
