from fastapi import APIRouter, HTTPException, Depends, status
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.orm import Session
from datetime import datetime, timezone
import logging

from travel_planner.core.database import get_db
from travel_planner.models import User
from travel_planner.models.user import ROLE_TRAVELLER
from travel_planner.auth.password import password_manager
from travel_planner.auth.jwt_manager import jwt_manager
from travel_planner.auth.rate_limiter import rate_limiter
from travel_planner.auth.middleware import get_current_user, CurrentUser
from travel_planner.api.users import UserResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])


class SignupRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int


class LoginResponse(TokenResponse):
    user: UserResponse


class RefreshRequest(BaseModel):
    refresh_token: str


class LogoutRequest(BaseModel):
    refresh_token: str


@router.post("/signup", response_model=LoginResponse, status_code=status.HTTP_201_CREATED)
async def signup(request: SignupRequest, db: Session = Depends(get_db)):
    """Register a traveller and log them in."""
    existing_user = db.query(User).filter(User.email == request.email.lower()).first()
    if existing_user:
        raise HTTPException(status_code=409, detail="A user with this email already exists")

    user = User(
        email=request.email.lower(),
        first_name=request.first_name,
        last_name=request.last_name,
        hashed_password=password_manager.hash_password(request.password),
        role=ROLE_TRAVELLER,
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    logger.info(f"Registered user {user.id}")
    tokens = jwt_manager.create_token_pair(db, user)
    return LoginResponse(user=UserResponse.model_validate(user), **tokens)


@router.post("/login", response_model=LoginResponse)
async def login(request: LoginRequest, db: Session = Depends(get_db)):
    """Authenticate user and return tokens."""

    # Check rate limiting
    can_attempt, lockout_until = rate_limiter.check_login_attempts(request.email)
    if not can_attempt:
        raise HTTPException(
            status_code=429,
            detail=f"Too many login attempts. Try again after {lockout_until}",
            headers={"Retry-After": str(int(rate_limiter.login_lockout_duration.total_seconds()))}
        )

    user = db.query(User).filter(User.email == request.email.lower()).first()
    if not user or not user.is_active:
        rate_limiter.record_login_attempt(request.email, False)
        raise HTTPException(status_code=401, detail="Invalid credentials")

    if not password_manager.verify_password(request.password, user.hashed_password):
        rate_limiter.record_login_attempt(request.email, False)
        user.failed_login_attempts = (user.failed_login_attempts or 0) + 1
        db.commit()
        raise HTTPException(status_code=401, detail="Invalid credentials")

    # Check if password needs rehashing
    if password_manager.needs_rehash(user.hashed_password):
        user.hashed_password = password_manager.hash_password(request.password)

    rate_limiter.record_login_attempt(request.email, True)

    user.failed_login_attempts = 0
    user.last_login_at = datetime.now(timezone.utc)
    db.commit()

    tokens = jwt_manager.create_token_pair(db, user)
    return LoginResponse(user=UserResponse.model_validate(user), **tokens)


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(request: RefreshRequest, db: Session = Depends(get_db)):
    """Refresh access token using refresh token."""
    tokens = jwt_manager.rotate_refresh_token(db, request.refresh_token)
    if not tokens:
        raise HTTPException(status_code=401, detail="Invalid or expired refresh token")

    return TokenResponse(**tokens)


@router.post("/logout")
async def logout(request: LogoutRequest, db: Session = Depends(get_db)):
    """Logout and revoke refresh token."""
    payload = jwt_manager.verify_refresh_token(db, request.refresh_token)
    if payload:
        jwt_manager.revoke_refresh_token(db, payload["jti"])

    return {"message": "Logged out successfully"}


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(current_user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
    """Get current user information."""
    user = db.query(User).filter(User.id == current_user.user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    return UserResponse.model_validate(user)
