"""
Модуль аутентификации и авторизации
"""
from datetime import datetime, timedelta
from typing import Optional
import bcrypt
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import Depends, HTTPException, status, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session
from depot_compliance.database import get_db
from depot_compliance.models import User, UserRole
from depot_compliance.config import get_settings
from depot_compliance.exceptions import UnauthorizedError
from depot_compliance.logger import logger
from depot_compliance.services.access_scope import CallerContext

settings = get_settings()

# Контекст для хеширования паролей
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# OAuth2 схема для получения токена из заголовка Authorization
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"

INVALID_CREDENTIALS_MESSAGE = "Неверный email или пароль"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Проверка пароля

    Args:
        plain_password: Обычный пароль
        hashed_password: Хешированный пароль

    Returns:
        True если пароль верный, иначе False
    """
    try:
        return bcrypt.checkpw(plain_password.encode('utf-8'), hashed_password.encode('utf-8'))
    except ValueError as e:
        # Некорректный формат хеша в БД
        logger.warning(f"Ошибка при проверке пароля: {e}")
        return False


def get_password_hash(password: str) -> str:
    """
    Хеширование пароля
    """
    return pwd_context.hash(password)


def _token_payload(user: User, token_type: str) -> dict:
    return {
        "sub": str(user.id),
        "email": user.email,
        "role": user.role,
        "depot_id": user.depot_id,
        "type": token_type,
    }


def _encode(data: dict, secret: str, expires_delta: timedelta) -> str:
    to_encode = data.copy()
    to_encode.update({"exp": datetime.utcnow() + expires_delta})
    return jwt.encode(to_encode, secret, algorithm=settings.jwt_algorithm)


def create_access_token(user: User, expires_delta: Optional[timedelta] = None) -> str:
    """
    Создание короткоживущего access токена

    Args:
        user: Пользователь
        expires_delta: Время жизни токена (по умолчанию из настроек)

    Returns:
        JWT токен
    """
    return _encode(
        _token_payload(user, ACCESS_TOKEN_TYPE),
        settings.secret_key,
        expires_delta or timedelta(minutes=settings.jwt_access_expire_minutes),
    )


def create_refresh_token(user: User, expires_delta: Optional[timedelta] = None) -> str:
    """
    Создание refresh токена (подписывается отдельным секретом)
    """
    return _encode(
        _token_payload(user, REFRESH_TOKEN_TYPE),
        settings.refresh_secret_key,
        expires_delta or timedelta(days=settings.jwt_refresh_expire_days),
    )


def decode_token(token: str, token_type: str = ACCESS_TOKEN_TYPE) -> dict:
    """
    Проверка подписи и типа токена

    Raises:
        UnauthorizedError: Токен недействителен, истек или другого типа
    """
    secret = settings.secret_key if token_type == ACCESS_TOKEN_TYPE else settings.refresh_secret_key
    try:
        payload = jwt.decode(token, secret, algorithms=[settings.jwt_algorithm])
    except JWTError:
        raise UnauthorizedError(f"Недействительный {token_type} токен")

    if payload.get("type") != token_type or payload.get("sub") is None:
        raise UnauthorizedError(f"Недействительный {token_type} токен")
    return payload


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    """
    Получение пользователя по email
    """
    return db.query(User).filter(User.email == email.strip().lower()).first()


def get_user_by_id(db: Session, user_id: int) -> Optional[User]:
    """
    Получение пользователя по ID
    """
    return db.query(User).filter(User.id == user_id).first()


def is_user_usable(user: Optional[User]) -> bool:
    """
    Пользователь существует, активен и не удален
    """
    return user is not None and user.is_active and user.deleted_at is None


def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
    """
    Аутентификация пользователя

    Args:
        db: Сессия базы данных
        email: Email адрес
        password: Пароль

    Returns:
        Пользователь если аутентификация успешна, иначе None
    """
    user = get_user_by_email(db, email)

    if not is_user_usable(user):
        logger.warning("Вход отклонен: пользователь не найден или неактивен", extra={"email": email})
        return None

    if not verify_password(password, user.hashed_password):
        logger.warning("Вход отклонен: неверный пароль", extra={"email": email})
        return None

    # Обновляем дату последнего входа
    user.last_login = datetime.utcnow()
    db.commit()
    logger.info("Успешная аутентификация пользователя", extra={"user_id": user.id})

    return user


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db)
) -> User:
    """
    Получение текущего пользователя из access токена

    Raises:
        HTTPException: Если токен невалидный или пользователь не найден
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Не удалось подтвердить учетные данные",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = decode_token(token, ACCESS_TOKEN_TYPE)
        user_id = int(payload["sub"])
    except (UnauthorizedError, ValueError):
        raise credentials_exception

    user = get_user_by_id(db, user_id)
    if not is_user_usable(user):
        raise credentials_exception

    return user


def _client_ip(request: Request) -> Optional[str]:
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    return request.client.host if request.client else None


async def get_caller_context(
    request: Request,
    current_user: User = Depends(get_current_user)
) -> CallerContext:
    """
    Формирование контекста авторизации для сервисов

    Роль и депо берутся из БД, а не из токена, чтобы изменения
    учетной записи действовали сразу.
    """
    return CallerContext(
        user_id=current_user.id,
        role=current_user.role,
        depot_id=current_user.depot_id,
        email=current_user.email,
        ip_address=_client_ip(request),
        user_agent=request.headers.get("User-Agent"),
    )


def require_roles(*roles: UserRole):
    """
    Зависимость для проверки роли пользователя

    Args:
        roles: Допустимые роли

    Returns:
        Зависимость, возвращающая CallerContext
    """
    allowed = {UserRole(role) for role in roles}

    async def role_checker(caller: CallerContext = Depends(get_caller_context)) -> CallerContext:
        if caller.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Требуется роль: {', '.join(sorted(role.value for role in allowed))}"
            )
        return caller

    return role_checker


require_super_admin = require_roles(UserRole.SUPER_ADMIN)
require_manager_or_admin = require_roles(UserRole.SUPER_ADMIN, UserRole.DEPOT_MANAGER)
