import logging

from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..config import ENVIRONMENT, JWT_EXPIRES_HOURS, TOKEN_COOKIE_NAME
from ..database import get_db
from ..errors import AppError, ValidationError
from ..models import User
from ..rate_limiter import create_rate_limiter, get_client_ip
from ..schemas import success_response, user_response
from ..security_utils import (
    check_password_strength,
    create_jwt_token,
    hash_password_bcrypt,
    log_security_event,
    verify_password_bcrypt,
)
from ..shared.validators import validate_email, validate_name

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Authentication"])

login_rate_limit = create_rate_limiter(limit=5, window_seconds=60, key_prefix="login", use_email=True)
register_rate_limit = create_rate_limiter(limit=10, window_seconds=3600, key_prefix="register")


class UserExistsError(AppError):
    status_code = 409
    code = "USER_EXISTS"
    default_message = "User with this email already exists"


class InvalidCredentialsError(AppError):
    status_code = 401
    code = "INVALID_CREDENTIALS"
    default_message = "Invalid email or password"


class RegisterRequest(BaseModel):
    name: str
    email: str
    password: str

    @field_validator("name")
    @classmethod
    def check_name(cls, v):
        return validate_name(v)

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        if not v or not v.strip():
            raise ValueError("Email is required")
        return validate_email(v)


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        if not v or not v.strip():
            raise ValueError("Email is required")
        return validate_email(v)

    @field_validator("password")
    @classmethod
    def check_password(cls, v):
        if not v:
            raise ValueError("Password is required")
        if len(v) > 128:
            raise ValueError("Password is too long")
        return v


def set_token_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=TOKEN_COOKIE_NAME,
        value=token,
        httponly=True,
        secure=ENVIRONMENT == "production",
        samesite="strict",
        max_age=JWT_EXPIRES_HOURS * 3600,
        path="/",
    )


@router.post("/register", status_code=201)
async def register(
    data: RegisterRequest,
    response: Response,
    db: Session = Depends(get_db),
    _: None = Depends(register_rate_limit),
):
    """Create an account and sign it in"""
    strength = check_password_strength(data.password)
    if not strength["is_valid"]:
        raise ValidationError(strength["feedback"][0], details={"password": strength["feedback"]})

    if db.query(User).filter(User.email == data.email).first():
        raise UserExistsError()

    user = User(name=data.name, email=data.email, password_hash=hash_password_bcrypt(data.password))
    db.add(user)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise UserExistsError() from e
    db.refresh(user)

    token = create_jwt_token(user.id)
    set_token_cookie(response, token)
    logger.info(f"Registered user {user.id}")

    body = success_response(message="User registered successfully")
    body.update({"token": token, "user": user_response(user)})
    return body


@router.post("/login")
async def login(
    data: LoginRequest,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    _: None = Depends(login_rate_limit),
):
    user = db.query(User).filter(User.email == data.email).first()
    if not user or not verify_password_bcrypt(data.password, user.password_hash):
        log_security_event("failed_login", ip_address=get_client_ip(request))
        raise InvalidCredentialsError()

    token = create_jwt_token(user.id)
    set_token_cookie(response, token)
    log_security_event("login", user_id=user.id, ip_address=get_client_ip(request))

    body = success_response(message="Login successful")
    body.update({"token": token, "user": user_response(user)})
    return body


@router.post("/logout")
async def logout(response: Response):
    response.delete_cookie(
        TOKEN_COOKIE_NAME,
        httponly=True,
        secure=ENVIRONMENT == "production",
        samesite="strict",
        path="/",
    )
    return success_response(message="Logout successful")


@router.get("/profile")
async def get_profile(current_user: User = Depends(get_current_user)):
    return success_response({"user": user_response(current_user)})
