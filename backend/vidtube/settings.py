from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="",
        extra="ignore",
    )

    app_name: str = "vidtube"
    environment: str = Field(default="local", validation_alias=AliasChoices("ENVIRONMENT", "VIDTUBE_ENVIRONMENT"))
    log_level: str = Field(default="INFO", validation_alias=AliasChoices("LOG_LEVEL", "VIDTUBE_LOG_LEVEL"))
    database_url: str = Field(
        default="postgresql+asyncpg://postgres:postgres@db:5432/vidtube",
        validation_alias=AliasChoices("DATABASE_URL", "VIDTUBE_DATABASE_URL"),
    )
    cors_origins: list[str] = Field(default=["*"], validation_alias=AliasChoices("CORS_ORIGIN", "VIDTUBE_CORS_ORIGIN"))

    secret_key: str = Field(default="change-me", validation_alias=AliasChoices("SECRET_KEY", "VIDTUBE_SECRET_KEY"))
    access_token_expiry_minutes: int = Field(
        default=60 * 24, validation_alias=AliasChoices("ACCESS_TOKEN_EXPIRY_MINUTES", "VIDTUBE_ACCESS_TOKEN_EXPIRY_MINUTES")
    )
    refresh_token_expiry_days: int = Field(
        default=10, validation_alias=AliasChoices("REFRESH_TOKEN_EXPIRY_DAYS", "VIDTUBE_REFRESH_TOKEN_EXPIRY_DAYS")
    )
    cookie_secure: bool = Field(default=True, validation_alias=AliasChoices("COOKIE_SECURE", "VIDTUBE_COOKIE_SECURE"))

    upload_tmp_dir: str = Field(default="./public/temp", validation_alias=AliasChoices("UPLOAD_TMP_DIR", "VIDTUBE_UPLOAD_TMP_DIR"))
    media_cloud_name: str | None = Field(default=None, validation_alias=AliasChoices("CLOUDINARY_CLOUD_NAME", "VIDTUBE_MEDIA_CLOUD_NAME"))
    media_api_key: str | None = Field(default=None, validation_alias=AliasChoices("CLOUDINARY_API_KEY", "VIDTUBE_MEDIA_API_KEY"))
    media_api_secret: str | None = Field(default=None, validation_alias=AliasChoices("CLOUDINARY_API_SECRET", "VIDTUBE_MEDIA_API_SECRET"))
    media_upload_url: str = Field(
        default="https://api.cloudinary.com/v1_1/{cloud_name}/{resource_type}/{action}",
        validation_alias=AliasChoices("MEDIA_UPLOAD_URL", "VIDTUBE_MEDIA_UPLOAD_URL"),
    )
    media_timeout_sec: int = Field(default=300, validation_alias=AliasChoices("MEDIA_TIMEOUT_SEC", "VIDTUBE_MEDIA_TIMEOUT_SEC"))

    @property
    def async_database_url(self) -> str:
        if self.database_url.startswith("postgresql+"):
            return self.database_url
        if self.database_url.startswith("postgresql://"):
            return self.database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
        return self.database_url

    @property
    def media_configured(self) -> bool:
        return bool(self.media_cloud_name and self.media_api_key and self.media_api_secret)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
