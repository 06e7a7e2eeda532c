from __future__ import annotations

from fastapi import APIRouter

from siteservices.dependencies.auth import AdminUser
from siteservices.dependencies.services import AccountServiceDep, NotificationHubDep
from siteservices.notifications import NotificationName
from siteservices.schemas import CamelModel, UserModel, UserUpdateRequest

router = APIRouter(prefix="/api/users", tags=["users"])


class UserListEnvelope(CamelModel):
    users: list[UserModel]


class UserEnvelope(CamelModel):
    user: UserModel


@router.get("", response_model=UserListEnvelope, summary="All accounts, newest first")
async def list_users(_: AdminUser, service: AccountServiceDep) -> UserListEnvelope:
    users = await service.list_users()
    return UserListEnvelope(users=[UserModel.model_validate(item) for item in users])


@router.patch("/{user_id}", response_model=UserEnvelope, summary="Enable or disable an account")
async def update_user(
    user_id: int,
    payload: UserUpdateRequest,
    admin: AdminUser,
    service: AccountServiceDep,
    hub: NotificationHubDep,
) -> UserEnvelope:
    user = await service.set_active(actor=admin, user_id=user_id, is_active=payload.is_active)
    model = UserModel.model_validate(user)
    hub.publish(NotificationName.USER_UPDATED, model)
    return UserEnvelope(user=model)
