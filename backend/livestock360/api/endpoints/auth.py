"""Authentication endpoints for user registration, login, and token management."""
import logging
from datetime import timedelta
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy import or_, select, text, update
from sqlalchemy.ext.asyncio import AsyncSession

from livestock360.api import deps
from livestock360.core.config import settings
from livestock360.core.database import get_db, utcnow
from livestock360.core.security import (
    REFRESH_TOKEN_TYPE,
    create_access_token,
    create_refresh_token,
    decode_token,
    get_password_hash,
    verify_password,
)
from livestock360.models.refresh_token import RefreshToken
from livestock360.models.user import User
from livestock360.schemas.response import ApiResponse, ok
from livestock360.schemas.token import (
    LoginResponse,
    RefreshTokenRequest,
    SessionInfo,
    SessionList,
    TokenPair,
)
from livestock360.schemas.user import LoginRequest, UserCreate, UserResponse

router = APIRouter()
logger = logging.getLogger(__name__)


def _get_lock_key(user_id: UUID) -> int:
    """
    Generate a stable advisory lock key for a user.

    PostgreSQL advisory locks take a signed 64-bit integer, so the UUID is
    folded into the positive half of that range.

    Args:
        user_id: UUID of the user.

    Returns:
        int: 64-bit integer lock key.
    """
    return user_id.int % 2**63


async def _lock_user(db: AsyncSession, user_id: UUID) -> None:
    """
    Serialize token mutations for one user until the transaction ends.

    Only PostgreSQL has transaction-scoped advisory locks; other backends
    (SQLite in development and tests) run without the lock.
    """
    if db.bind.dialect.name != "postgresql":
        return
    await db.execute(
        text("SELECT pg_advisory_xact_lock(:lock_key)"),
        {"lock_key": _get_lock_key(user_id)}
    )
    logger.debug("Acquired advisory lock for user %s", user_id)


def _client_info(request: Request) -> dict:
    return {
        "ip": request.client.host if request.client else "unknown",
        "user_agent": request.headers.get("user-agent", "unknown")
    }


def _issue_token_pair(db: AsyncSession, user: User, request: Request) -> TokenPair:
    """Mint an access/refresh pair and stage the refresh token row."""
    access_token = create_access_token(data={"sub": str(user.id)})
    refresh_token = create_refresh_token(data={"sub": str(user.id)})

    db.add(RefreshToken(
        token=refresh_token,
        user_id=user.id,
        expires_at=utcnow() + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
        client_info=_client_info(request)
    ))

    return TokenPair(
        access_token=access_token,
        refresh_token=refresh_token,
        token_type="bearer",
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60
    )


def _invalid_refresh_token(detail: str = "Invalid refresh token") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail
    )


@router.post("/register", response_model=ApiResponse[UserResponse], status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserCreate,
    db: AsyncSession = Depends(get_db)
) -> ApiResponse[UserResponse]:
    """
    Register a new user.

    Args:
        user_data: Registration data (user name, full name, email, password).
        db: Database session dependency.

    Returns:
        ApiResponse[UserResponse]: Created user information.

    Raises:
        HTTPException: 409 if the email or user name is already registered.
    """
    result = await db.execute(
        select(User).where(
            or_(User.email == user_data.email, User.user_name == user_data.user_name)
        )
    )
    if result.scalars().first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User with this email or username already exists"
        )

    db_user = User(
        user_name=user_data.user_name,
        full_name=user_data.full_name,
        email=user_data.email,
        phone=user_data.phone,
        hashed_password=get_password_hash(user_data.password)
    )

    db.add(db_user)
    await db.commit()
    await db.refresh(db_user)

    logger.info("New user registered: %s", db_user.user_name)
    return ok(
        UserResponse.model_validate(db_user),
        "User registered successfully",
        status.HTTP_201_CREATED
    )


@router.post("/login", response_model=ApiResponse[LoginResponse])
async def login(
    login_data: LoginRequest,
    request: Request,
    db: AsyncSession = Depends(get_db)
) -> ApiResponse[LoginResponse]:
    """
    Authenticate user and return token pair (access + refresh) with the profile.

    Any refresh tokens the user still holds are revoked, so a login starts
    a fresh session chain.

    Raises:
        HTTPException: 404 unknown email, 401 wrong password, 400 inactive user.
    """
    result = await db.execute(
        select(User).where(User.email == login_data.email)
    )
    user = result.scalar_one_or_none()

    if not user:
        logger.warning("Login attempt with non-existent email: %s", login_data.email)
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User does not exist"
        )

    if not verify_password(login_data.password, user.hashed_password):
        logger.warning("Failed login attempt for user: %s", user.user_name)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Password is incorrect",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        logger.warning("Inactive user attempted login: %s", user.user_name)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Inactive user"
        )

    await _lock_user(db, user.id)

    now = utcnow()
    await db.execute(
        update(RefreshToken)
        .where(
            RefreshToken.user_id == user.id,
            RefreshToken.revoked.is_(False),
        )
        .values(revoked=True, revoked_at=now)
    )

    pair = _issue_token_pair(db, user, request)
    await db.commit()  # Commit releases the advisory lock

    logger.info("User logged in successfully: %s", user.user_name)
    return ok(
        LoginResponse(**pair.model_dump(), user=UserResponse.model_validate(user)),
        "User logged in successfully"
    )


@router.post("/refresh-token", response_model=ApiResponse[TokenPair])
async def refresh_token(
    refresh_request: RefreshTokenRequest,
    request: Request,
    db: AsyncSession = Depends(get_db)
) -> ApiResponse[TokenPair]:
    """
    Exchange a refresh token for a new token pair.

    The presented refresh token is revoked in the same transaction that
    stores its successor, so every refresh token is usable exactly once.

    Raises:
        HTTPException: 401 if the refresh token is invalid, revoked or expired.
    """
    payload = decode_token(refresh_request.refresh_token, expected_type=REFRESH_TOKEN_TYPE)
    if not payload:
        logger.warning("Invalid refresh token format")
        raise _invalid_refresh_token()

    user_id = payload.get("sub")
    try:
        user_uuid = UUID(user_id) if user_id else None
    except ValueError:
        user_uuid = None
    if user_uuid is None:
        logger.warning("Refresh token carries no usable user ID: %s", user_id)
        raise _invalid_refresh_token()

    await _lock_user(db, user_uuid)

    now = utcnow()
    result = await db.execute(
        select(RefreshToken)
        .where(
            RefreshToken.token == refresh_request.refresh_token,
            RefreshToken.user_id == user_uuid,
            RefreshToken.revoked.is_(False),
            RefreshToken.expires_at > now
        )
        .with_for_update()
    )
    db_refresh_token = result.scalar_one_or_none()

    if not db_refresh_token:
        logger.warning("Refresh token not found, revoked or expired for user %s", user_uuid)
        raise _invalid_refresh_token("Invalid or expired refresh token")

    result = await db.execute(select(User).where(User.id == user_uuid))
    user = result.scalar_one_or_none()

    if not user or not user.is_active:
        logger.warning("User %s not found or inactive during token refresh", user_uuid)
        raise _invalid_refresh_token("User not found or inactive")

    db_refresh_token.revoked = True
    db_refresh_token.revoked_at = now
    db_refresh_token.last_used_at = now

    pair = _issue_token_pair(db, user, request)
    await db.commit()  # Commit releases the advisory lock

    logger.info("Token refreshed for user: %s", user.user_name)
    return ok(pair, "Access token refreshed")


@router.post("/logout", response_model=ApiResponse[dict])
async def logout(
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user)
) -> ApiResponse[dict]:
    """Logout the current user by revoking all their refresh tokens."""
    await _lock_user(db, current_user.id)

    await db.execute(
        update(RefreshToken)
        .where(
            RefreshToken.user_id == current_user.id,
            RefreshToken.revoked.is_(False)
        )
        .values(revoked=True, revoked_at=utcnow())
    )
    await db.commit()

    logger.info(
        "User logged out: %s, IP: %s",
        current_user.user_name,
        request.client.host if request.client else "unknown"
    )
    return ok({}, "User logged out successfully")


@router.get("/me", response_model=ApiResponse[UserResponse])
async def get_current_user_info(
    current_user: User = Depends(deps.get_current_active_user)
) -> ApiResponse[UserResponse]:
    """Get information about the currently authenticated user."""
    return ok(UserResponse.model_validate(current_user), "Current user fetched successfully")


@router.get("/sessions", response_model=ApiResponse[SessionList])
async def get_active_sessions(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user)
) -> ApiResponse[SessionList]:
    """
    List active sessions (unrevoked, unexpired refresh tokens) of the current user.

    Read-only, so no advisory lock is taken.
    """
    result = await db.execute(
        select(RefreshToken)
        .where(
            RefreshToken.user_id == current_user.id,
            RefreshToken.revoked.is_(False),
            RefreshToken.expires_at > utcnow()
        )
        .order_by(RefreshToken.created_at.desc())
    )
    active_tokens = result.scalars().all()

    sessions = [
        SessionInfo(
            id=str(token.id),
            created_at=token.created_at.isoformat() if token.created_at else None,
            expires_at=token.expires_at.isoformat() if token.expires_at else None,
            client_info=token.client_info or {},
            last_used=token.last_used_at.isoformat() if token.last_used_at else None
        )
        for token in active_tokens
    ]

    return ok(SessionList(active_sessions=sessions, total=len(sessions)), "Active sessions fetched successfully")
