"""
Authentication routes for login, register, and token management.
"""
from fastapi import APIRouter, Depends, HTTPException, status, Request
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..database import get_db
from ..errors import Conflict
from ..limiter import limiter
from ..logging_config import get_logger
from ..models.user import User
from ..schemas.auth import UserCreate, UserLogin, UserResponse, TokenResponse, RefreshRequest
from ..auth import (
    verify_password,
    get_password_hash,
    create_tokens,
    get_required_user,
    refresh_access_token,
)
from ..config import get_settings

settings = get_settings()
logger = get_logger("auth")

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _login(email: str, password: str, db: Session) -> TokenResponse:
    user = db.query(User).filter(User.email == email.lower()).first()
    if not user or not user.is_active or not verify_password(password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    access_token, refresh_token = create_tokens(user.id)
    return TokenResponse(access_token=access_token, refresh_token=refresh_token)


@router.post("/register", response_model=UserResponse)
@limiter.limit(settings.register_rate_limit)
def register(request: Request, user_data: UserCreate, db: Session = Depends(get_db)):
    """Register a new user account."""
    email = user_data.email.lower()
    existing = db.query(User).filter(
        or_(User.email == email, User.username == user_data.username)
    ).first()
    if existing:
        field = "Email" if existing.email == email else "Username"
        raise Conflict(f"{field} already in use", {"field": field.lower()})

    user = User(
        username=user_data.username,
        email=email,
        hashed_password=get_password_hash(user_data.password),
        name=user_data.name or user_data.username,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("User registered", user_id=user.id)
    return user


@router.post("/login", response_model=TokenResponse)
@limiter.limit(settings.login_rate_limit)
def login(request: Request, form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
    """Login with OAuth2 form (username field carries the email)."""
    return _login(form_data.username, form_data.password, db)


@router.post("/login/json", response_model=TokenResponse)
@limiter.limit(settings.login_rate_limit)
def login_json(request: Request, credentials: UserLogin, db: Session = Depends(get_db)):
    """Login with JSON body (email/password)."""
    return _login(credentials.email, credentials.password, db)


@router.post("/refresh", response_model=TokenResponse)
@limiter.limit("10/minute")
def refresh_tokens(request: Request, refresh_request: RefreshRequest, db: Session = Depends(get_db)):
    """Get new access and refresh tokens using a valid refresh token."""
    tokens = refresh_access_token(refresh_request.refresh_token, db)
    if not tokens:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired refresh token",
        )

    access_token, refresh_token = tokens
    return TokenResponse(access_token=access_token, refresh_token=refresh_token)


@router.get("/me", response_model=UserResponse)
def get_me(current_user: User = Depends(get_required_user)):
    """Get current authenticated user."""
    return current_user
