"""
Rate Limiting для защиты от перебора паролей и злоупотреблений
"""
from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import Request, status
from fastapi.responses import JSONResponse
from depot_compliance.config import get_settings
from depot_compliance.logger import logger
from depot_compliance.middleware.prometheus_metrics import record_rate_limit_exceeded

settings = get_settings()


def get_rate_limit_key(request: Request) -> str:
    """
    Получение ключа для rate limiting

    Приоритет:
    1. IP адрес из заголовка X-Forwarded-For (если за прокси)
    2. IP адрес из заголовка X-Real-IP
    3. IP адрес клиента напрямую
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    return get_remote_address(request)


limiter = Limiter(
    key_func=get_rate_limit_key,
    default_limits=[settings.rate_limit_default] if settings.enable_rate_limit else [],
    enabled=settings.enable_rate_limit,
    storage_uri="memory://",
    headers_enabled=True
)


async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    """
    Обработчик превышения rate limit: 429 с заголовком Retry-After
    """
    client_ip = get_rate_limit_key(request)

    logger.warning(
        "Превышен rate limit",
        extra={
            "path": request.url.path,
            "method": request.method,
            "client_ip": client_ip,
            "limit": str(exc.detail)
        }
    )
    record_rate_limit_exceeded(request.url.path)

    retry_after = getattr(exc, "retry_after", None) or 60

    response = JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={
            "detail": "Превышен лимит запросов. Пожалуйста, попробуйте позже.",
            "error_code": "RATE_LIMIT_EXCEEDED",
            "retry_after": retry_after
        }
    )
    response.headers["Retry-After"] = str(retry_after)
    return response


def setup_rate_limiting(app):
    """
    Настройка rate limiting для приложения
    """
    app.state.limiter = limiter

    if not settings.enable_rate_limit:
        logger.info("Rate limiting отключен")
        return

    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)

    logger.info(
        "Rate limiting включен",
        extra={
            "default_limit": settings.rate_limit_default,
            "strict_limit": settings.rate_limit_strict
        }
    )
