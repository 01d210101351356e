"""
Кэш системных настроек

Экземпляр кэша создается приложением и передается в сервисы по ссылке.
TTL и источник времени задаются при создании, поэтому устаревание
значений в нескольких процессах - явный параметр конфигурации.
"""
import threading
import time
from typing import Callable, Dict, Optional, Tuple

import redis

from depot_compliance.config import Settings, SETTINGS_CACHE_REDIS
from depot_compliance.logger import logger


DEFAULT_TTL_SECONDS = 300


class SettingsCache:
    """
    Интерфейс кэша строковых значений настроек с TTL
    """

    def __init__(self, ttl_seconds: int = DEFAULT_TTL_SECONDS):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds должен быть положительным")
        self.ttl_seconds = ttl_seconds

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def invalidate(self, key: str) -> None:
        raise NotImplementedError

    def clear(self) -> None:
        raise NotImplementedError


class MemorySettingsCache(SettingsCache):
    """
    Кэш в памяти процесса

    При нескольких экземплярах приложения каждый процесс может отдавать
    устаревшее значение до истечения TTL.
    """

    def __init__(self, ttl_seconds: int = DEFAULT_TTL_SECONDS, clock: Callable[[], float] = time.monotonic):
        """
        Args:
            ttl_seconds: Время жизни значения в секундах
            clock: Источник времени (подменяется в тестах)
        """
        super().__init__(ttl_seconds)
        self._clock = clock
        self._entries: Dict[str, Tuple[str, float]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, stored_at = entry
            if self._clock() - stored_at >= self.ttl_seconds:
                del self._entries[key]
                return None
            return value

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._entries[key] = (value, self._clock())

    def invalidate(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


class RedisSettingsCache(SettingsCache):
    """
    Кэш в Redis, общий для всех экземпляров приложения

    Инвалидация одного процесса сразу видна остальным. При недоступности
    Redis кэш работает как отсутствующий: чтение идет из БД.
    """

    def __init__(self, client: redis.Redis, ttl_seconds: int = DEFAULT_TTL_SECONDS, prefix: str = "depot:settings"):
        super().__init__(ttl_seconds)
        self._client = client
        self._prefix = prefix

    @classmethod
    def from_url(cls, url: str, ttl_seconds: int = DEFAULT_TTL_SECONDS) -> "RedisSettingsCache":
        client = redis.Redis.from_url(
            url,
            decode_responses=True,
            socket_timeout=5,
            socket_connect_timeout=5
        )
        return cls(client, ttl_seconds=ttl_seconds)

    def _make_key(self, key: str) -> str:
        return f"{self._prefix}:{key}"

    def get(self, key: str) -> Optional[str]:
        try:
            return self._client.get(self._make_key(key))
        except redis.RedisError as e:
            logger.error(f"Ошибка чтения кэша настроек из Redis: {e}", extra={"key": key})
            return None

    def set(self, key: str, value: str) -> None:
        try:
            self._client.setex(self._make_key(key), self.ttl_seconds, value)
        except redis.RedisError as e:
            logger.error(f"Ошибка записи кэша настроек в Redis: {e}", extra={"key": key})

    def invalidate(self, key: str) -> None:
        try:
            self._client.delete(self._make_key(key))
        except redis.RedisError as e:
            logger.error(f"Ошибка инвалидации кэша настроек в Redis: {e}", extra={"key": key})

    def clear(self) -> None:
        try:
            keys = list(self._client.scan_iter(match=self._make_key("*")))
            if keys:
                self._client.delete(*keys)
        except redis.RedisError as e:
            logger.error(f"Ошибка очистки кэша настроек в Redis: {e}")


def build_settings_cache(settings: Settings) -> SettingsCache:
    """
    Создание кэша настроек согласно конфигурации
    """
    if settings.settings_cache_backend == SETTINGS_CACHE_REDIS:
        logger.info("Кэш системных настроек: Redis", extra={"ttl_seconds": settings.settings_cache_ttl_seconds})
        return RedisSettingsCache.from_url(settings.redis_url, ttl_seconds=settings.settings_cache_ttl_seconds)

    logger.info("Кэш системных настроек: память процесса", extra={"ttl_seconds": settings.settings_cache_ttl_seconds})
    return MemorySettingsCache(ttl_seconds=settings.settings_cache_ttl_seconds)
