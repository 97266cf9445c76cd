"""
Authentication API endpoints - register, login (JWT bearer), logout, me
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer, OAuth2PasswordRequestForm
from pydantic import BaseModel, Field

from isp_tracker.api.schemas import CamelModel
from isp_tracker.config import get_settings
from isp_tracker.models.user import User
from isp_tracker.storage.base import ProjectStore
from isp_tracker.storage.sql import get_store

settings = get_settings()
logger = logging.getLogger(__name__)

router = APIRouter()

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


# --- Pydantic Schemas ---

class UserCreate(CamelModel):
    username: str = Field(min_length=3)
    password: str = Field(min_length=6)
    name: Optional[str] = None
    role: Optional[str] = None
    email: Optional[str] = None


class UserResponse(CamelModel):
    id: int
    username: str
    name: Optional[str] = None
    role: Optional[str] = None
    email: Optional[str] = None
    is_admin: bool = False


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


def _user_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        username=user.username,
        name=user.name,
        role=user.role,
        email=user.email,
        is_admin=bool(user.is_admin),
    )


# --- Password & token helpers ---

def get_password_hash(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=10)).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        return False


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    store: ProjectStore = Depends(get_store),
) -> User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except jwt.PyJWTError:
        raise credentials_exception

    username = payload.get("sub")
    if not username:
        raise credentials_exception

    user = await store.get_user_by_username(username)
    if user is None:
        raise credentials_exception
    return user


# --- Endpoints ---

@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(data: UserCreate, store: ProjectStore = Depends(get_store)):
    """Register a new login"""
    if await store.get_user_by_username(data.username):
        raise HTTPException(status_code=400, detail="Username already taken")

    user = await store.create_user({
        "username": data.username,
        "hashed_password": get_password_hash(data.password),
        "name": data.name,
        "role": data.role,
        "email": data.email,
        "is_admin": False,
    })
    await store.commit()
    logger.info(f"Registered user {user.username}")
    return _user_response(user)


@router.post("/login", response_model=Token)
async def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    store: ProjectStore = Depends(get_store),
):
    """Exchange username + password for a bearer token"""
    user = await store.get_user_by_username(form_data.username)
    if not user or not verify_password(form_data.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return Token(access_token=create_access_token(data={"sub": user.username}))


@router.post("/logout")
async def logout(current_user: User = Depends(get_current_user)):
    """Tokens are stateless; the client discards its token"""
    logger.info(f"User {current_user.username} logged out")
    return {"message": "Logged out"}


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    return _user_response(current_user)
