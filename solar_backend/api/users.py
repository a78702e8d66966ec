"""
Users API - account management with role/status filters
"""
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from solar_backend.api.auth import get_current_user, get_password_hash
from solar_backend.api.pagination import PageResponse, search_page, to_response
from solar_backend.database import get_db
from solar_backend.domain.enums import UserRole, UserStatus
from solar_backend.models.service_order import ServiceOrder
from solar_backend.models.user import User
from solar_backend.utils.helpers import generate_id
from solar_backend.utils.listing import USER_SEARCH_FIELDS
from solar_backend.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


# --- Pydantic Schemas ---

class UserResponse(BaseModel):
    id: str
    name: str
    email: str
    phone: Optional[str]
    role: UserRole
    status: UserStatus
    company: Optional[str]
    is_admin: bool
    created_at: Optional[datetime]
    last_active: Optional[datetime]

    model_config = ConfigDict(from_attributes=True)


class UserCreate(BaseModel):
    name: str
    email: str
    password: str
    phone: Optional[str] = None
    role: UserRole = UserRole.CONTRACTOR
    status: UserStatus = UserStatus.ACTIVE
    company: Optional[str] = None
    is_admin: bool = False


class UserUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    role: Optional[UserRole] = None
    status: Optional[UserStatus] = None
    company: Optional[str] = None
    password: Optional[str] = None


# --- Helper ---

async def _get_user_or_404(db: AsyncSession, user_id: str) -> User:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


async def _ensure_email_free(db: AsyncSession, email: str, exclude_id: Optional[str] = None) -> None:
    query = select(User).where(User.email == email)
    if exclude_id:
        query = query.where(User.id != exclude_id)
    result = await db.execute(query)
    if result.scalar_one_or_none():
        raise HTTPException(status_code=400, detail="Email already registered")


# --- Endpoints ---

@router.get("/", response_model=PageResponse[UserResponse])
async def list_users(
    search: Optional[str] = None,
    role: Optional[str] = "all",
    status: Optional[str] = "all",
    page: int = Query(1, ge=1),
    page_size: Optional[int] = Query(None, ge=1),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """List users matching name/email/id/company, filtered by role and status"""
    result = await db.execute(select(User).order_by(User.name))
    users = result.scalars().all()
    found = search_page(
        users, search, USER_SEARCH_FIELDS, {"role": role, "status": status}, page, page_size,
    )
    return to_response(found, UserResponse)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await _get_user_or_404(db, user_id)


@router.post("/", response_model=UserResponse)
async def create_user(
    data: UserCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    await _ensure_email_free(db, data.email)

    fields = data.model_dump(exclude={"password"})
    fields["role"] = data.role.value
    fields["status"] = data.status.value
    user = User(id=generate_id("USER"), hashed_password=get_password_hash(data.password), **fields)
    db.add(user)
    await db.commit()
    await db.refresh(user)
    logger.info("Created user %s (%s) by %s", user.id, user.email, current_user.id)
    return user


@router.patch("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: str,
    data: UserUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    user = await _get_user_or_404(db, user_id)
    updates = data.model_dump(exclude_unset=True, exclude_none=True)

    if "email" in updates:
        await _ensure_email_free(db, updates["email"], exclude_id=user_id)
    if "password" in updates:
        user.hashed_password = get_password_hash(updates.pop("password"))
    for key, value in updates.items():
        setattr(user, key, getattr(value, "value", value))

    await db.commit()
    await db.refresh(user)
    return user


@router.delete("/{user_id}")
async def delete_user(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    if user_id == current_user.id:
        raise HTTPException(status_code=400, detail="You cannot delete your own account")
    user = await _get_user_or_404(db, user_id)

    orders = await db.execute(select(ServiceOrder.id).where(ServiceOrder.issuer_id == user_id).limit(1))
    if orders.scalar_one_or_none():
        raise HTTPException(status_code=400, detail="User has issued service orders")

    await db.delete(user)
    await db.commit()
    logger.info("Deleted user %s", user_id)
    return {"message": "User deleted"}
