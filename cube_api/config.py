"""
Configuration for the Cube API, resolved from the environment

A `.env` file in the working directory is loaded first (python-dotenv),
real environment variables win over it.
"""

import os
from dataclasses import dataclass, field, fields, replace
from typing import Optional
from urllib.parse import quote_plus

from dotenv import find_dotenv, load_dotenv


@dataclass(frozen=True)
class Settings:
    service_name: str = 'cube-api'

    # Connection descriptor; database_url wins when set
    db_driver: str = 'mysql+pymysql'
    db_host: str = 'localhost'
    db_port: int = 3306
    db_name: str = 'cube'
    db_user: str = 'cube'
    db_password: str = ''
    database_url: Optional[str] = None

    jwt_secret_key: str = field(default='', repr=False)
    jwt_ttl_seconds: int = 86400

    api_prefix: str = '/api/v1'
    allow_cors: str = '*'

    log_level: str = 'INFO'
    log_dir: str = 'log'
    otel_exporter_url: Optional[str] = None

    host: str = '0.0.0.0'
    port: int = 8000

    @classmethod
    def from_env(cls, **overrides) -> 'Settings':
        """
        Build settings from environment variables

        Args:
            **overrides: Field values that take precedence over the environment

        Usage:
            settings = Settings.from_env(database_url='sqlite://')
        """
        load_dotenv(find_dotenv(usecwd=True))

        env = {
            'service_name': os.getenv('SERVICE_NAME', cls.service_name),
            'db_driver': os.getenv('DB_DRIVER', cls.db_driver),
            'db_host': os.getenv('DB_HOST', cls.db_host),
            'db_port': int(os.getenv('DB_PORT', str(cls.db_port))),
            'db_name': os.getenv('DB_NAME', cls.db_name),
            'db_user': os.getenv('DB_USER', cls.db_user),
            'db_password': os.getenv('DB_PASSWORD', cls.db_password),
            'database_url': os.getenv('DATABASE_URL') or None,
            'jwt_secret_key': os.getenv('JWT_SECRET_KEY', ''),
            'jwt_ttl_seconds': int(os.getenv('JWT_TTL_SECONDS', str(cls.jwt_ttl_seconds))),
            'api_prefix': os.getenv('API_PREFIX', cls.api_prefix),
            'allow_cors': os.getenv('ALLOW_CORS', cls.allow_cors),
            'log_level': os.getenv('LOG_LEVEL', cls.log_level),
            'log_dir': os.getenv('LOG_DIR', cls.log_dir),
            'otel_exporter_url': os.getenv('OTEL_EXPORTER_OTLP_ENDPOINT') or None,
            'host': os.getenv('HOST', cls.host),
            'port': int(os.getenv('PORT', str(cls.port))),
        }

        known = {f.name for f in fields(cls)}
        unknown = set(overrides) - known
        if unknown:
            raise ValueError(f"Unknown settings: {sorted(unknown)}")

        env.update(overrides)
        return cls(**env)

    def with_overrides(self, **overrides) -> 'Settings':
        return replace(self, **overrides)

    @property
    def sqlalchemy_url(self) -> str:
        if self.database_url:
            return self.database_url
        return (
            f"{self.db_driver}://{quote_plus(self.db_user)}:{quote_plus(self.db_password)}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )

    def validate(self):
        """Fail fast on misconfiguration, before serving any request"""
        if not self.jwt_secret_key:
            raise ValueError('JWT_SECRET_KEY must be set')
        if self.jwt_ttl_seconds < 0:
            raise ValueError('JWT_TTL_SECONDS must be >= 0')
