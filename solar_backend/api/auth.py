"""
Authentication API - login, signup and bearer-token user resolution
"""
import hashlib
import secrets
from datetime import datetime, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer, OAuth2PasswordRequestForm
from jose import JWTError, jwt
from pydantic import BaseModel, ConfigDict
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from solar_backend.config import get_settings
from solar_backend.database import get_db
from solar_backend.domain.enums import UserRole, UserStatus
from solar_backend.models.user import User
from solar_backend.utils.helpers import generate_id
from solar_backend.utils.logger import get_logger

settings = get_settings()
logger = get_logger(__name__)

router = APIRouter()

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


# --- Pydantic Schemas ---

class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserRegister(BaseModel):
    name: str
    email: str
    password: str
    phone: Optional[str] = None
    company: Optional[str] = None
    role: UserRole = UserRole.CLIENT


class CurrentUserResponse(BaseModel):
    id: str
    name: str
    email: str
    role: str
    status: str
    is_admin: bool

    model_config = ConfigDict(from_attributes=True)


# --- Password / token helpers ---

def get_password_hash(password: str) -> str:
    salt = secrets.token_hex(16)
    digest = hashlib.sha256(f"{salt}:{password}".encode()).hexdigest()
    return f"{salt}:{digest}"


def verify_password(password: str, hashed: str) -> bool:
    salt, _, stored = (hashed or "").partition(":")
    if not stored:
        return False
    digest = hashlib.sha256(f"{salt}:{password}".encode()).hexdigest()
    return secrets.compare_digest(digest, stored)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    payload = dict(data)
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    payload["exp"] = expire
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Resolve the bearer token to an active user, 401 otherwise"""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        raise credentials_exception
    email = payload.get("sub")
    if not email:
        raise credentials_exception

    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()
    if user is None or user.status == UserStatus.INACTIVE.value:
        raise credentials_exception
    return user


# --- Endpoints ---

@router.post("/login", response_model=Token)
async def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: AsyncSession = Depends(get_db)
):
    """Exchange email + password for a bearer token"""
    result = await db.execute(select(User).where(User.email == form_data.username))
    user = result.scalar_one_or_none()
    if not user or not verify_password(form_data.password, user.hashed_password):
        logger.warning("Failed login for %s", form_data.username)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user.last_active = datetime.utcnow()
    await db.commit()
    return Token(access_token=create_access_token(data={"sub": user.email}))


@router.post("/register", response_model=CurrentUserResponse)
async def register(data: UserRegister, db: AsyncSession = Depends(get_db)):
    """Self-service signup; accounts start pending until management activates them"""
    result = await db.execute(select(User).where(User.email == data.email))
    if result.scalar_one_or_none():
        raise HTTPException(status_code=400, detail="Email already registered")

    user = User(
        id=generate_id("USER"),
        name=data.name,
        email=data.email,
        phone=data.phone,
        company=data.company,
        role=data.role.value,
        status=UserStatus.PENDING.value,
        hashed_password=get_password_hash(data.password),
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    logger.info("Registered user %s (%s)", user.id, user.email)
    return user


@router.get("/me", response_model=CurrentUserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    return current_user
