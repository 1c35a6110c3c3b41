"""
Centralized application settings using Pydantic.

All environment variables are read once and validated.
Use the cached getters instead of scattered os.getenv() calls throughout the codebase.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import SecretStr
from pydantic_settings import BaseSettings


class ConverterSettings(BaseSettings):
    """Remote math conversion service configuration."""

    MATHPIX_BASE_URL: str = "https://api.mathpix.com/v3"
    MATHPIX_APP_ID: str = ""
    MATHPIX_APP_KEY: SecretStr = SecretStr("")

    model_config = {"case_sensitive": True, "env_file": ".env", "extra": "ignore"}


class S3Settings(BaseSettings):
    """S3/MinIO object storage configuration."""

    S3_ENDPOINT: str = "localhost:9000"
    S3_ACCESS_KEY: str = ""
    S3_SECRET_KEY: SecretStr = SecretStr("")
    S3_BUCKET: str = "mathdoc"
    S3_SECURE: bool = True
    S3_URL_EXPIRY_SECONDS: int = 3600

    model_config = {"case_sensitive": True, "env_file": ".env", "extra": "ignore"}


class CacheSettings(BaseSettings):
    """Local durable key-value store configuration."""

    CACHE_DIR: str = "./.cache/mathdoc"

    model_config = {"case_sensitive": True, "env_file": ".env", "extra": "ignore"}

    @property
    def cache_dir(self) -> Path:
        return Path(self.CACHE_DIR.strip() or "./.cache/mathdoc").resolve()


class LLMSettings(BaseSettings):
    """Generative text service configuration."""

    LLM_ENDPOINT_URL: str = "https://api.openai.com/v1/chat/completions"
    LLM_API_KEY: SecretStr = SecretStr("")
    LLM_MODEL: str = "gpt-4o-mini"

    model_config = {"case_sensitive": True, "env_file": ".env", "extra": "ignore"}


class AppSettings(BaseSettings):
    """General application settings."""

    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    model_config = {"case_sensitive": True, "env_file": ".env", "extra": "ignore"}


@lru_cache(maxsize=1)
def get_converter_settings() -> ConverterSettings:
    return ConverterSettings()


@lru_cache(maxsize=1)
def get_s3_settings() -> S3Settings:
    return S3Settings()


@lru_cache(maxsize=1)
def get_cache_settings() -> CacheSettings:
    return CacheSettings()


@lru_cache(maxsize=1)
def get_llm_settings() -> LLMSettings:
    return LLMSettings()


@lru_cache(maxsize=1)
def get_app_settings() -> AppSettings:
    return AppSettings()
