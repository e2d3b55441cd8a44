from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator
from typing import List, Union
import json
from pathlib import Path


def _parse_list(v):
    if isinstance(v, str):
        # Try to parse as JSON first
        try:
            parsed = json.loads(v)
            if isinstance(parsed, list):
                return parsed
        except (json.JSONDecodeError, ValueError):
            pass
        # If not JSON, split by comma
        return [item.strip() for item in v.split(',') if item.strip()]
    return v


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str

    # JWT (tokens are issued by the auth service; we only verify them)
    SECRET_KEY: str
    ALGORITHM: str = "HS256"

    # CORS
    CORS_ORIGINS: Union[str, List[str]] = "http://localhost:3000"

    # Environment / logging
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = str(Path(__file__).parent.parent.parent / "logs")

    # Attachments
    UPLOAD_ROOT: str = str(Path(__file__).parent.parent.parent / "uploads")
    FILE_BASE_URL: str = "http://localhost:8000"
    MAX_ATTACHMENT_SIZE_MB: int = 5
    ALLOWED_ATTACHMENT_EXTENSIONS: Union[str, List[str]] = ".pdf,.doc,.docx,.jpg,.jpeg,.png"

    # Leave types whose requests are checked against the remaining balance.
    BALANCE_ENFORCED_LEAVE_TYPES: Union[str, List[str]] = "annual"

    @field_validator('CORS_ORIGINS', 'BALANCE_ENFORCED_LEAVE_TYPES', mode='before')
    @classmethod
    def parse_list_fields(cls, v):
        return _parse_list(v)

    @field_validator('ALLOWED_ATTACHMENT_EXTENSIONS', mode='before')
    @classmethod
    def parse_extensions(cls, v):
        extensions = _parse_list(v)
        return [ext.lower() if ext.startswith('.') else f".{ext.lower()}" for ext in extensions]

    @property
    def max_attachment_size_bytes(self) -> int:
        return self.MAX_ATTACHMENT_SIZE_MB * 1024 * 1024

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() in ["prod", "production"]

    model_config = SettingsConfigDict(
        env_file=Path(__file__).parent.parent.parent / ".env",
        env_file_encoding='utf-8',
        case_sensitive=True,
        extra='ignore'
    )


settings = Settings()
