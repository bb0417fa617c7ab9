from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str = Field(..., alias="DATABASE_URL")
    database_echo: bool = Field(False, alias="DATABASE_ECHO")

    jwt_secret_key: str = Field(..., alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field("HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(15, alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    log_level: str = Field("INFO", alias="LOG_LEVEL")
    cors_allow_origins: List[str] = Field(default_factory=lambda: ["*"], alias="CORS_ALLOW_ORIGINS")

    # Used by db/seed_school.py only
    seed_school_name: Optional[str] = Field(None, alias="SEED_SCHOOL_NAME")
    seed_admin_email: Optional[str] = Field(None, alias="SEED_ADMIN_EMAIL")
    seed_admin_password: Optional[str] = Field(None, alias="SEED_ADMIN_PASSWORD")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
