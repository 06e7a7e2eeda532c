from __future__ import annotations

from fastapi import APIRouter, Response

from siteservices.core.config import get_settings
from siteservices.dependencies.auth import CurrentUser, SessionToken
from siteservices.dependencies.services import AccountServiceDep
from siteservices.identity.models import Session
from siteservices.schemas import CamelModel, LoginRequest, RegisterRequest, UserModel

router = APIRouter(prefix="/api", tags=["auth"])


class UserEnvelope(CamelModel):
    user: UserModel


def _set_session_cookie(response: Response, session: Session) -> None:
    settings = get_settings()
    response.set_cookie(
        key=settings.session_cookie_name,
        value=session.token,
        expires=session.expires_at,
        path="/",
        httponly=True,
        samesite="lax",
        secure=settings.session_cookie_secure,
    )


@router.post("/auth/register", response_model=UserEnvelope, summary="Create an account and sign in")
async def register(payload: RegisterRequest, response: Response, service: AccountServiceDep) -> UserEnvelope:
    user, session = await service.register(
        full_name=payload.full_name,
        email=payload.email,
        password=payload.password,
        role=payload.role,
    )
    _set_session_cookie(response, session)
    return UserEnvelope(user=UserModel.model_validate(user))


@router.post("/auth/login", response_model=UserEnvelope)
async def login(payload: LoginRequest, response: Response, service: AccountServiceDep) -> UserEnvelope:
    user, session = await service.login(email=payload.email, password=payload.password)
    _set_session_cookie(response, session)
    return UserEnvelope(user=UserModel.model_validate(user))


@router.post("/auth/logout")
async def logout(response: Response, token: SessionToken, service: AccountServiceDep) -> dict[str, bool]:
    await service.logout(token)
    response.delete_cookie(get_settings().session_cookie_name, path="/")
    return {"ok": True}


@router.get("/me", response_model=UserEnvelope, summary="Current session user")
async def me(user: CurrentUser) -> UserEnvelope:
    return UserEnvelope(user=UserModel.model_validate(user))
