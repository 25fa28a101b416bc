"""Settings for the order, product and user services, read from the environment."""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

log = logging.getLogger(__name__)

_INTEGER = re.compile(r"[+-]?[0-9]+")


class ConfigError(ValueError):
    """Raised when a setting cannot be interpreted."""


@dataclass(frozen=True)
class DatabaseConfig:
    """Connection settings for a PostgreSQL database."""

    host: str
    port: str
    username: str
    password: str
    database_name: str
    ssl_mode: str

    def dsn(self) -> str:
        """Return the libpq keyword/value connection string."""
        return (
            f"host={self.host} user={self.username} password={self.password} "
            f"dbname={self.database_name} port={self.port} "
            f"sslmode={self.ssl_mode} TimeZone=UTC"
        )


@dataclass(frozen=True)
class ServerConfig:
    port: str
    mode: str


@dataclass(frozen=True)
class JWTConfig:
    secret_key: str
    expires_in_hours: int = 0


@dataclass(frozen=True)
class RedisConfig:
    host: str
    port: str
    password: str
    database: int = 0

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"


@dataclass(frozen=True)
class CallServiceConfig:
    user_service_url: str
    product_service_url: str
    commission_rate: float


@dataclass(frozen=True)
class OrderConfig:
    database: DatabaseConfig
    server: ServerConfig
    jwt: JWTConfig
    call_service: CallServiceConfig


@dataclass(frozen=True)
class ProductConfig:
    database: DatabaseConfig
    server: ServerConfig
    jwt: JWTConfig
    redis: RedisConfig


@dataclass(frozen=True)
class UserConfig:
    database: DatabaseConfig
    server: ServerConfig
    jwt: JWTConfig


def _environment(env: Mapping[str, str] | None) -> Mapping[str, str]:
    if env is not None:
        return env
    dotenv = Path(".env")
    if dotenv.is_file():
        load_dotenv(dotenv)
    else:
        log.warning("Error loading .env file")
    return os.environ


def _database(env: Mapping[str, str]) -> DatabaseConfig:
    return DatabaseConfig(
        host=env.get("DB_HOST", ""),
        port=env.get("DB_PORT", ""),
        username=env.get("DB_USER", ""),
        password=env.get("DB_PASSWORD", ""),
        database_name=env.get("DB_NAME", ""),
        ssl_mode=env.get("DB_SSLMODE", ""),
    )


def _server(env: Mapping[str, str]) -> ServerConfig:
    return ServerConfig(port=env.get("SERVER_PORT", ""), mode=env.get("GIN_MODE", ""))


def _parse_rate(text: str) -> float:
    if not text or text != text.strip() or "_" in text:
        raise ConfigError(f'invalid SERVICE_COMMISSION_RATE: parsing "{text}": invalid syntax')
    try:
        return float(text)
    except ValueError as exc:
        raise ConfigError(
            f'invalid SERVICE_COMMISSION_RATE: parsing "{text}": invalid syntax'
        ) from exc


def _parse_hours(text: str) -> int:
    """Whole hours; anything that is not a plain integer counts as zero."""
    if _INTEGER.fullmatch(text):
        return int(text)
    return 0


def load_order_config(env: Mapping[str, str] | None = None) -> OrderConfig:
    """Read the order service settings; a bad commission rate raises ConfigError."""
    env = _environment(env)
    rate = _parse_rate(env.get("SERVICE_COMMISSION_RATE", ""))
    return OrderConfig(
        database=_database(env),
        server=_server(env),
        jwt=JWTConfig(secret_key=env.get("JWT_SECRET", "")),
        call_service=CallServiceConfig(
            user_service_url=env.get("SERVICE_USER_URL", ""),
            product_service_url=env.get("SERVICE_PRODUCT_URL", ""),
            commission_rate=rate,
        ),
    )


def load_product_config(env: Mapping[str, str] | None = None) -> ProductConfig:
    """Read the product service settings."""
    env = _environment(env)
    return ProductConfig(
        database=_database(env),
        server=_server(env),
        jwt=JWTConfig(secret_key=env.get("JWT_SECRET", "")),
        redis=RedisConfig(
            host=env.get("REDIS_HOST", ""),
            port=env.get("REDIS_PORT", ""),
            password=env.get("REDIS_PASSWORD", ""),
            database=0,
        ),
    )


def load_user_config(env: Mapping[str, str] | None = None) -> UserConfig:
    """Read the user service settings."""
    env = _environment(env)
    return UserConfig(
        database=_database(env),
        server=_server(env),
        jwt=JWTConfig(
            secret_key=env.get("JWT_SECRET", ""),
            expires_in_hours=_parse_hours(env.get("JWT_EXPIRES_IN", "")),
        ),
    )