import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from lexcanada.core.config import get_config
from lexcanada.core.database import get_db
from lexcanada.core.errors import AuthenticationError, AuthorizationError, ConflictError, ValidationError
from lexcanada.core.rate_limiter import rate_limiter
from lexcanada.core.response_utils import create_success_response, ResponseTimer
from lexcanada.core.security import (
    PasswordValidator,
    create_access_token,
    decode_access_token,
    generate_token,
    get_password_hash,
    verify_password,
)
from lexcanada.models.user import User
from lexcanada.schemas import LoginRequest, StandardResponse, Token, UserCreate, UserResponse, UserUpdate
from lexcanada.services.email_service import email_service

config = get_config()
logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)

router = APIRouter()


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    """Get user by email."""
    return db.query(User).filter(User.email == email.lower()).first()


def get_current_user(token: Optional[str] = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> User:
    """Get current authenticated user."""
    if not token:
        raise AuthenticationError()

    username = decode_access_token(token)
    if username is None:
        raise AuthenticationError("Could not validate credentials")

    user = db.query(User).filter(User.username == username).first()
    if user is None or not user.is_active:
        raise AuthenticationError("Could not validate credentials")
    return user


def require_user_role(current_user: User = Depends(get_current_user)) -> User:
    """Require any authenticated user role."""
    return current_user


def require_admin_role(current_user: User = Depends(get_current_user)) -> User:
    """Require admin role."""
    if not current_user.is_admin():
        raise AuthorizationError("Admin access required")
    return current_user


def require_ai_quota(current_user: User = Depends(get_current_user)) -> User:
    """Per-user rate limit for endpoints that call an LLM."""
    rate_limiter.enforce(f"ai:{current_user.id}", config.security.ai_requests_per_minute, 1)
    return current_user


@router.post("/register", response_model=StandardResponse, status_code=201)
def register(user: UserCreate, db: Session = Depends(get_db)):
    """Register a new user."""
    with ResponseTimer() as timer:
        email = user.email.lower()
        logger.info(f"Registration attempt - Email: {email}, Username: {user.username}")

        password_check = PasswordValidator.validate_password(user.password)
        if not password_check['is_valid']:
            raise ValidationError(
                "Password requirements not met",
                errors={"password": "; ".join(password_check['errors'])},
            )

        if get_user_by_email(db, email):
            raise ConflictError("Email already registered")
        if db.query(User).filter(User.username == user.username).first():
            raise ConflictError("Username already taken")

        verification_token = generate_token()
        new_user = User(
            username=user.username,
            full_name=user.full_name,
            email=email,
            hashed_password=get_password_hash(user.password),
            preferred_language=user.preferred_language,
            is_active=True,
            is_email_verified=False,
            email_verification_token=verification_token,
            role="user",
        )
        db.add(new_user)
        db.commit()
        db.refresh(new_user)

        if email_service.is_configured:
            email_service.send_verification_email(
                email=new_user.email,
                username=new_user.username,
                verification_token=verification_token,
            )

        return create_success_response(
            data=UserResponse.model_validate(new_user),
            status_code=201,
            execution_time=timer.get_execution_time()
        )


@router.post("/login", response_model=StandardResponse)
def login_for_access_token(login_data: LoginRequest, db: Session = Depends(get_db)):
    """Login with email and password."""
    with ResponseTimer() as timer:
        email = login_data.email.lower()
        rate_limiter.enforce(
            f"login:{email}",
            config.security.max_login_attempts,
            config.security.login_lockout_minutes,
        )

        user = get_user_by_email(db, email)
        if not user or not verify_password(login_data.password, user.hashed_password):
            logger.warning(f"Failed login for {email}")
            raise AuthenticationError("Incorrect email or password")

        if not user.is_active:
            raise AuthenticationError("Account is deactivated")

        expires_minutes = config.security.access_token_expire_minutes
        access_token = create_access_token(
            data={"sub": user.username, "role": user.role},
            expires_delta=timedelta(minutes=expires_minutes),
        )
        token = Token(
            access_token=access_token,
            expires_in=expires_minutes * 60,
            user=UserResponse.model_validate(user),
        )

        return create_success_response(
            data=token,
            status_code=200,
            execution_time=timer.get_execution_time()
        )


@router.get("/me", response_model=StandardResponse)
def get_profile(current_user: User = Depends(require_user_role)):
    """Get current user's profile information."""
    with ResponseTimer() as timer:
        return create_success_response(
            data=UserResponse.model_validate(current_user),
            execution_time=timer.get_execution_time()
        )


@router.patch("/me", response_model=StandardResponse)
def update_profile(
    changes: UserUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_user_role)
):
    """Update the caller's name and preferred language."""
    with ResponseTimer() as timer:
        for field, value in changes.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(current_user, field, value)
        current_user.updated_at = datetime.utcnow()
        db.commit()
        db.refresh(current_user)

        return create_success_response(
            data=UserResponse.model_validate(current_user),
            execution_time=timer.get_execution_time()
        )


@router.get("/verify-email", response_model=StandardResponse)
def verify_email(token: str, db: Session = Depends(get_db)):
    """Verify user email with the token sent in the verification link."""
    with ResponseTimer() as timer:
        user = db.query(User).filter(User.email_verification_token == token).first()
        if not user:
            raise ValidationError("Invalid or expired verification token")

        user.is_email_verified = True
        user.email_verification_token = None
        user.updated_at = datetime.utcnow()
        db.commit()
        logger.info(f"Email verified for user {user.id}")

        return create_success_response(
            data=None,
            message="Email verified successfully",
            execution_time=timer.get_execution_time()
        )
