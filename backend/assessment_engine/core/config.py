from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=True,
        extra='forbid',
    )

    DATABASE_URL: str
    APP_ENV: str = 'development'
    CORS_ORIGINS: str = 'http://localhost:3001'
    LOG_LEVEL: str = 'INFO'

    LEADERBOARD_LIMIT: int = 50
    OPEN_ANSWER_PASS_THRESHOLD: float = 0.5
    SHUFFLE_SEED: int | None = None

    NOTIFICATION_WEBHOOK_URL: str | None = None
    NOTIFICATION_WEBHOOK_TOKEN: str | None = None
    NOTIFICATION_TIMEOUT_SECONDS: float = 10.0

    @field_validator('DATABASE_URL')
    @classmethod
    def validate_database_url(cls, value: str) -> str:
        if not value.startswith(('postgresql', 'sqlite')):
            raise ValueError('DATABASE_URL must point to PostgreSQL (or SQLite for local runs)')
        return value

    @field_validator('OPEN_ANSWER_PASS_THRESHOLD')
    @classmethod
    def validate_pass_threshold(cls, value: float) -> float:
        if not 0.0 <= value <= 1.0:
            raise ValueError('OPEN_ANSWER_PASS_THRESHOLD must be between 0 and 1')
        return value

    @field_validator('LEADERBOARD_LIMIT')
    @classmethod
    def validate_leaderboard_limit(cls, value: int) -> int:
        if value < 1 or value > 500:
            raise ValueError('LEADERBOARD_LIMIT must be between 1 and 500')
        return value

    @field_validator('LOG_LEVEL')
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        return value.strip().upper()

    @property
    def cors_origins(self) -> list[str]:
        return [item.strip() for item in self.CORS_ORIGINS.split(',') if item.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
