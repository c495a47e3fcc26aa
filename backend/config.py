"""
Configuration Module

Reads database and server settings from the environment. A local `.env` file
is loaded first so development setups don't need exported variables.
"""

import os
from dataclasses import dataclass, field
from typing import Any, Optional

from dotenv import load_dotenv
from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import ArgumentError

from errors import ConfigurationError

load_dotenv()

_TRUTHY = {'1', 'true', 'yes', 'on'}


def env_flag(name: str, default: bool = False) -> bool:
    """Interpret an environment variable as a boolean flag."""
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUTHY


def env_int(name: str, default: int) -> int:
    """Read an integer environment variable, failing loudly on junk."""
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}") from None


@dataclass
class DatabaseSettings:
    """Connection parameters for the tool database."""
    driver: str = 'mysql+pymysql'
    host: str = '127.0.0.1'
    port: int = 3306
    database: str = 'securitydb2025'
    username: str = 'root'
    password: str = ''
    ssl: bool = False
    ssl_ca: Optional[str] = None
    echo: bool = False
    url: Optional[str] = None
    extra_connect_args: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_env(cls) -> 'DatabaseSettings':
        """Build settings from DB_* variables, or DATABASE_URL when it is set."""
        return cls(
            driver=os.getenv('DB_DRIVER', 'mysql+pymysql'),
            host=os.getenv('DB_HOST', '127.0.0.1'),
            port=env_int('DB_PORT', 3306),
            database=os.getenv('DB_NAME', 'securitydb2025'),
            username=os.getenv('DB_USER', 'root'),
            password=os.getenv('DB_PASSWORD', ''),
            ssl=env_flag('DB_SSL'),
            ssl_ca=os.getenv('DB_SSL_CA') or None,
            echo=env_flag('DB_ECHO'),
            url=os.getenv('DATABASE_URL') or None,
        )

    def sqlalchemy_url(self) -> URL:
        """Return the SQLAlchemy URL for these settings."""
        if self.url:
            try:
                return make_url(self.url)
            except ArgumentError as e:
                raise ConfigurationError(f"Invalid DATABASE_URL: {e}") from e

        return URL.create(
            drivername=self.driver,
            username=self.username or None,
            password=self.password or None,
            host=self.host,
            port=self.port,
            database=self.database,
        )

    def connect_args(self) -> dict[str, Any]:
        """Driver keyword arguments: TLS on or off, and SQLite thread sharing."""
        backend = self.sqlalchemy_url().get_backend_name()
        args: dict[str, Any] = {}

        if backend in ('mysql', 'mariadb'):
            if self.ssl:
                args['ssl'] = {'ca': self.ssl_ca} if self.ssl_ca else {'check_hostname': False}
            else:
                args['ssl_disabled'] = True
        elif backend == 'postgresql':
            args['sslmode'] = 'require' if self.ssl else 'disable'
            if self.ssl and self.ssl_ca:
                args['sslrootcert'] = self.ssl_ca
        elif backend == 'sqlite':
            # The one shared connection may be closed from a different thread than opened it.
            args['check_same_thread'] = False

        args.update(self.extra_connect_args)
        return args

    def describe(self) -> str:
        """Connection target with the password masked, for log lines."""
        return self.sqlalchemy_url().render_as_string(hide_password=True)


@dataclass
class ServerSettings:
    """HTTP server settings for the Flask API."""
    host: str = '0.0.0.0'
    port: int = 3001
    debug: bool = False
    cors_origins: list[str] = field(default_factory=lambda: [
        'http://localhost:3000', 'http://127.0.0.1:3000'
    ])
    log_level: str = 'INFO'

    @classmethod
    def from_env(cls) -> 'ServerSettings':
        origins = os.getenv('CORS_ORIGINS')
        settings = cls(
            host=os.getenv('HOST', '0.0.0.0'),
            port=env_int('PORT', 3001),
            debug=env_flag('FLASK_DEBUG'),
            log_level=os.getenv('LOG_LEVEL', 'INFO').upper(),
        )
        if origins:
            settings.cors_origins = [o.strip() for o in origins.split(',') if o.strip()]
        return settings
