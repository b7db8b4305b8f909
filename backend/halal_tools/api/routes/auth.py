"""
Authentication API routes
"""
from typing import Optional, Union
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from halal_tools.core.auth import get_current_user_required
from halal_tools.core.database import get_db
from halal_tools.core.logging_config import LoggingConfig
from halal_tools.models.user import User
from halal_tools.services.auth_service import AuthService
from halal_tools.services.email_service import EmailService
from halal_tools.services.quota_ledger import QuotaLedger

logger = LoggingConfig.get_logger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


# Request/Response models
class SignupRequest(BaseModel):
    """User registration request"""
    email: EmailStr
    name: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1)
    phone_number: Optional[str] = Field(None, max_length=50)
    country: Optional[str] = Field(None, max_length=100)
    # Accepted from older clients; the server-side counter is authoritative
    frontendFreeUses: Optional[int] = None


class LoginRequest(BaseModel):
    """User login request"""
    email: EmailStr
    password: str
    frontendFreeUses: Optional[int] = None


class ForgotPasswordRequest(BaseModel):
    email: Optional[str] = None


class ResetPasswordRequest(BaseModel):
    email: Optional[str] = None
    otp: Optional[str] = None
    newPassword: Optional[str] = None
    confirmPassword: Optional[str] = None


class UserResponse(BaseModel):
    """User response model"""
    id: str
    email: str
    name: Optional[str] = None
    phone_number: Optional[str] = None
    country: Optional[str] = None
    is_premium: bool
    monthly: bool
    free_uses: Union[int, str]
    created_at: str
    last_login: Optional[str] = None


class AuthResponse(BaseModel):
    """Token issued on signup or login"""
    token: str
    expires_at: str
    user: UserResponse
    is_premium: bool
    monthly: bool
    ok: bool = True


class FreeUsesResponse(BaseModel):
    remaining_uses: Union[int, str]
    is_premium: bool
    message: str


class MessageResponse(BaseModel):
    message: str


def _user_response(user: User, db: Session) -> UserResponse:
    status_ = QuotaLedger(db).get_status(user.quota_identity, unlimited=user.is_premium)
    return UserResponse(
        id=str(user.id),
        email=user.email,
        name=user.name,
        phone_number=user.phone_number,
        country=user.country,
        is_premium=user.is_premium,
        monthly=user.monthly,
        free_uses=status_.remaining,
        created_at=user.created_at.isoformat(),
        last_login=user.last_login.isoformat() if user.last_login else None,
    )


def _auth_response(auth_service: AuthService, user: User, db: Session) -> AuthResponse:
    token, expires_at = auth_service.create_access_token(user)
    return AuthResponse(
        token=token,
        expires_at=expires_at.isoformat(),
        user=_user_response(user, db),
        is_premium=user.is_premium,
        monthly=user.monthly,
    )


@router.post("/signup", response_model=AuthResponse)
async def signup(request: SignupRequest, db: Session = Depends(get_db)):
    """Register a new user and sign them in"""
    auth_service = AuthService(db)
    user = auth_service.signup(
        email=request.email,
        name=request.name,
        password=request.password,
        phone_number=request.phone_number,
        country=request.country,
    )
    return _auth_response(auth_service, user, db)


@router.post("/login", response_model=AuthResponse)
async def login(request: LoginRequest, db: Session = Depends(get_db)):
    """Exchange email and password for an access token"""
    auth_service = AuthService(db)
    user = auth_service.authenticate(request.email, request.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )
    return _auth_response(auth_service, user, db)


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    current_user: User = Depends(get_current_user_required),
    db: Session = Depends(get_db),
):
    """Get current user information"""
    return _user_response(current_user, db)


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(request: ForgotPasswordRequest, db: Session = Depends(get_db)):
    """Email a password reset code"""
    otp = AuthService(db).request_password_reset(request.email or "")
    await run_in_threadpool(EmailService().send_password_reset_otp, request.email.strip(), otp)
    return MessageResponse(message="OTP sent to your email address.")


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(request: ResetPasswordRequest, db: Session = Depends(get_db)):
    """Set a new password with an emailed code"""
    AuthService(db).reset_password(
        email=request.email or "",
        otp=request.otp or "",
        new_password=request.newPassword or "",
        confirm_password=request.confirmPassword or "",
    )
    return MessageResponse(message="Password has been successfully reset. You can now log in.")


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_account(
    user_id: UUID,
    current_user: User = Depends(get_current_user_required),
    db: Session = Depends(get_db),
):
    """Delete the signed-in user's account and everything linked to it"""
    AuthService(db).delete_account(user_id, requested_by=current_user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/free-uses", response_model=FreeUsesResponse)
async def free_uses(
    current_user: User = Depends(get_current_user_required),
    db: Session = Depends(get_db),
):
    """Remaining free generations for this month"""
    quota = QuotaLedger(db).get_status(current_user.quota_identity, unlimited=current_user.is_premium)
    if current_user.is_premium:
        message = "You have unlimited uses with premium plan"
    else:
        message = f"You have {quota.remaining} free uses remaining this month"
    return FreeUsesResponse(
        remaining_uses=quota.remaining,
        is_premium=current_user.is_premium,
        message=message,
    )
