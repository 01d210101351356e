"""
Роутер для аутентификации
"""
from fastapi import APIRouter, Depends, HTTPException, status, Request
from sqlalchemy.orm import Session

from depot_compliance.auth import (
    authenticate_user,
    create_access_token,
    create_refresh_token,
    decode_token,
    get_current_user,
    get_user_by_id,
    is_user_usable,
    INVALID_CREDENTIALS_MESSAGE,
    REFRESH_TOKEN_TYPE,
)
from depot_compliance.config import get_settings
from depot_compliance.database import get_db
from depot_compliance.exceptions import UnauthorizedError
from depot_compliance.logger import logger
from depot_compliance.middleware.prometheus_metrics import record_auth_failure
from depot_compliance.middleware.rate_limit import limiter
from depot_compliance.models import User
from depot_compliance.schemas import LoginRequest, RefreshRequest, Token, TokenUser, UserResponse

settings = get_settings()

router = APIRouter(prefix="/api/v1/auth", tags=["Аутентификация"])


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


@router.post("/login", response_model=Token)
@limiter.limit(settings.rate_limit_strict)
async def login(
    request: Request,
    login_data: LoginRequest,
    db: Session = Depends(get_db)
):
    """
    Вход в систему по email и паролю

    Returns:
        Пара токенов (access и refresh) и данные пользователя

    Raises:
        HTTPException: 401 при неверных учетных данных или неактивном пользователе
    """
    user = authenticate_user(db, login_data.email, login_data.password)

    if not user:
        record_auth_failure("invalid_credentials")
        raise _unauthorized(INVALID_CREDENTIALS_MESSAGE)

    logger.info("Успешный вход пользователя", extra={"user_id": user.id, "role": user.role})

    return Token(
        access_token=create_access_token(user),
        refresh_token=create_refresh_token(user),
        token_type="bearer",
        expires_in=settings.jwt_access_expire_minutes * 60,
        user=TokenUser.model_validate(user),
    )


@router.post("/refresh", response_model=Token)
@limiter.limit(settings.rate_limit_strict)
async def refresh(
    request: Request,
    refresh_data: RefreshRequest,
    db: Session = Depends(get_db)
):
    """
    Получение нового access токена по refresh токену

    Raises:
        HTTPException: 401 если refresh токен недействителен или пользователь неактивен
    """
    try:
        payload = decode_token(refresh_data.refresh_token, REFRESH_TOKEN_TYPE)
        user_id = int(payload["sub"])
    except (UnauthorizedError, ValueError):
        record_auth_failure("invalid_refresh_token")
        raise _unauthorized("Недействительный refresh токен")

    user = get_user_by_id(db, user_id)
    if not is_user_usable(user):
        record_auth_failure("inactive_user")
        raise _unauthorized("Недействительный refresh токен")

    return Token(
        access_token=create_access_token(user),
        token_type="bearer",
        expires_in=settings.jwt_access_expire_minutes * 60,
        user=TokenUser.model_validate(user),
    )


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    """
    Данные текущего пользователя
    """
    return current_user
