from collections.abc import Callable
from typing import Annotated

from fastapi import Depends, HTTPException, Request, Security
from fastapi.security import APIKeyCookie

from siteservices.core.config import get_settings
from siteservices.core.errors import Forbidden
from siteservices.identity.models import Role, User
from siteservices.identity.sessions import SessionResolver

session_cookie = APIKeyCookie(name=get_settings().session_cookie_name, auto_error=False)


def get_session_resolver(request: Request) -> SessionResolver:
    resolver = getattr(request.app.state, "session_resolver", None)
    if resolver is None:
        raise HTTPException(status_code=503, detail="Session store is not configured")
    return resolver


async def get_current_user(
    request: Request,
    token: Annotated[str | None, Security(session_cookie)],
    resolver: Annotated[SessionResolver, Depends(get_session_resolver)],
) -> User:
    """Resolve the session cookie to an active user.

    The result is cached on ``request.state`` so several dependencies in one
    request share a single lookup.
    """

    cached = getattr(request.state, "user", None)
    if isinstance(cached, User):
        return cached

    user = await resolver.resolve(token)
    request.state.user = user
    return user


def role_required(*roles: Role) -> Callable[[User], User]:
    """Dependency factory ensuring the current user holds one of ``roles``."""

    async def dependency(user: Annotated[User, Depends(get_current_user)]) -> User:
        if not user.has_role(*roles):
            raise Forbidden()
        return user

    return dependency


CurrentUser = Annotated[User, Depends(get_current_user)]
AdminUser = Annotated[User, Depends(role_required(Role.ADMIN))]
ResidentUser = Annotated[User, Depends(role_required(Role.RESIDENT))]
SessionToken = Annotated[str | None, Security(session_cookie)]
