"""User management API endpoints."""
from typing import List
from fastapi import APIRouter, status
from pydantic import BaseModel, Field

from smartpos.core.dependencies import Admins, Executor, Managers, WRITE_ACCESS
from smartpos.core.exceptions import BusinessRuleError
from smartpos.repositories import tenants as tenants_repo
from smartpos.repositories import users as users_repo
from smartpos.schemas.auth import UserResponse
from smartpos.schemas.common import MessageResponse
from smartpos.schemas.user import UserCreate, UserUpdate


router = APIRouter()


class PasswordReset(BaseModel):
    new_password: str = Field(..., min_length=6)


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED, dependencies=WRITE_ACCESS)
async def create_user(body: UserCreate, ctx: Managers, executor: Executor):
    tenant = await tenants_repo.get_tenant(executor, ctx.tenant_id)
    account = await users_repo.create_user(executor, tenant, body.model_dump())
    return UserResponse.model_validate(account)


@router.get("", response_model=List[UserResponse])
async def list_users(ctx: Managers, executor: Executor):
    accounts = await users_repo.list_users(executor, ctx.tenant_id)
    return [UserResponse.model_validate(a) for a in accounts]


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(user_id: str, ctx: Managers, executor: Executor):
    account = await users_repo.get_user(executor, ctx.tenant_id, user_id)
    return UserResponse.model_validate(account)


@router.put("/{user_id}", response_model=UserResponse, dependencies=WRITE_ACCESS)
async def update_user(user_id: str, body: UserUpdate, ctx: Managers, executor: Executor):
    tenant = await tenants_repo.get_tenant(executor, ctx.tenant_id)
    account = await users_repo.update_user(
        executor, tenant, user_id, body.model_dump(exclude_unset=True)
    )
    return UserResponse.model_validate(account)


@router.post("/{user_id}/reset-password", response_model=MessageResponse, dependencies=WRITE_ACCESS)
async def reset_password(user_id: str, body: PasswordReset, ctx: Admins, executor: Executor):
    tenant = await tenants_repo.get_tenant(executor, ctx.tenant_id)
    await users_repo.update_user(executor, tenant, user_id, {"password": body.new_password})
    return MessageResponse(message="Password reset successfully")


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=WRITE_ACCESS)
async def delete_user(user_id: str, ctx: Admins, executor: Executor):
    if user_id == ctx.user_id:
        raise BusinessRuleError("You cannot delete your own account")
    tenant = await tenants_repo.get_tenant(executor, ctx.tenant_id)
    await users_repo.delete_user(executor, tenant, user_id)
