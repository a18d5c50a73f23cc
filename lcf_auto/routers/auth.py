"""
Authentication routes.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from lcf_auto.database import get_db
from lcf_auto.models.user import User, UserRole
from lcf_auto.schemas.user import User as UserSchema, UserCreate, Token, LoginRequest
from lcf_auto.auth import (
    MAX_PASSWORD_BYTES,
    authenticate_user,
    create_access_token,
    get_current_active_user,
    get_password_hash,
)
from lcf_auto.services.loyalty import award_welcome_bonus

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=UserSchema, status_code=status.HTTP_201_CREATED)
async def register(
    user: UserCreate,
    db: AsyncSession = Depends(get_db)
):
    """
    Register a customer account and credit the welcome bonus.
    """
    email = user.email.lower()

    if len(user.password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Password must not exceed {MAX_PASSWORD_BYTES} bytes"
        )

    # Check if email already exists
    result = await db.execute(select(User).where(User.email == email))
    if result.scalar_one_or_none():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered"
        )

    db_user = User(
        email=email,
        hashed_password=get_password_hash(user.password),
        first_name=user.first_name,
        last_name=user.last_name,
        role=UserRole.USER,
        loyalty_points=0,
    )
    db.add(db_user)
    await db.commit()
    await db.refresh(db_user)

    # The account exists even if the bonus cannot be credited
    try:
        await award_welcome_bonus(db, db_user.id)
    except Exception:
        logger.exception("Error awarding welcome bonus to user %s", db_user.id)

    await db.refresh(db_user)
    return db_user


@router.post("/login", response_model=Token)
async def login(
    credentials: LoginRequest,
    db: AsyncSession = Depends(get_db)
):
    """
    Exchange email and password for an access token.
    """
    user = await authenticate_user(db, credentials.email, credentials.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is deactivated"
        )

    return Token(access_token=create_access_token(user.id, user.role))


@router.get("/me", response_model=UserSchema)
async def read_current_user(current_user: User = Depends(get_current_active_user)):
    """Profile of the authenticated user."""
    return current_user
