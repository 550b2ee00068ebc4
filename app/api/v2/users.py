"""
Users API - account administration.
"""
from fastapi import APIRouter, Request, status, Query
from sqlalchemy import select
from typing import Optional

from app.api.deps import DbSession, AdminUser, get_password_hash
from app.exceptions import ConflictError, NotFoundError, BusinessRuleError
from app.models.audit_log import AuditEntityType, AuditAction
from app.models.user import User
from app.schemas.auth import AdminUserCreate, UserUpdate, UserResponse
from app.services.audit_diff import snapshot
from app.services.audit_logger import record_audit_event, render_summary

router = APIRouter()


async def _get_user_or_404(db, user_id: str) -> User:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise NotFoundError("User", user_id)
    return user


@router.get("", response_model=list[UserResponse])
async def list_users(
    db: DbSession,
    current_user: AdminUser,
    role: Optional[str] = Query(None),
):
    """List accounts, optionally restricted to one role."""
    query = select(User).order_by(User.email)
    if role:
        query = query.where(User.role == role)
    result = await db.execute(query)
    return result.scalars().all()


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    user_data: AdminUserCreate,
    request: Request,
    db: DbSession,
    current_user: AdminUser,
):
    """Create an account with any role."""
    result = await db.execute(select(User).where(User.email == user_data.email))
    if result.scalar_one_or_none():
        raise ConflictError("Email already registered")

    data = user_data.model_dump(exclude={"password"})
    user = User(**data, hashed_password=get_password_hash(user_data.password))
    db.add(user)
    await db.commit()
    await db.refresh(user)
    response = UserResponse.model_validate(user)

    await record_audit_event(
        db,
        entity_type=AuditEntityType.USER,
        entity_id=user.id,
        action=AuditAction.CREATED,
        summary=render_summary(AuditEntityType.USER, AuditAction.CREATED, suffix="par l'administrateur"),
        actor=current_user,
        request=request,
        new=snapshot(user),
        metadata={"role": user.role},
    )
    return response


@router.patch("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: str,
    user_data: UserUpdate,
    request: Request,
    db: DbSession,
    current_user: AdminUser,
):
    """Update profile fields, role or activation."""
    user = await _get_user_or_404(db, user_id)
    previous = snapshot(user)

    for field, value in user_data.model_dump(exclude_unset=True).items():
        setattr(user, field, value)

    await db.commit()
    await db.refresh(user)
    response = UserResponse.model_validate(user)

    await record_audit_event(
        db,
        entity_type=AuditEntityType.USER,
        entity_id=user.id,
        action=AuditAction.UPDATED,
        summary=render_summary(AuditEntityType.USER, AuditAction.UPDATED),
        actor=current_user,
        request=request,
        previous=previous,
        new=snapshot(user),
    )
    return response


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: str,
    request: Request,
    db: DbSession,
    current_user: AdminUser,
):
    """Delete an account. Its audit entries survive with actor_id cleared."""
    if user_id == current_user.id:
        raise BusinessRuleError("Administrators cannot delete their own account")

    user = await _get_user_or_404(db, user_id)
    previous = snapshot(user)

    await db.delete(user)
    await db.commit()

    await record_audit_event(
        db,
        entity_type=AuditEntityType.USER,
        entity_id=user_id,
        action=AuditAction.DELETED,
        summary=render_summary(AuditEntityType.USER, AuditAction.DELETED),
        actor=current_user,
        request=request,
        previous=previous,
        metadata={"email": previous["email"]},
    )
