"""
Application configuration powered by pydantic settings.

Values are merged in this order (later wins):
configs/base.yaml -> configs/<ENV>.yaml -> environment variables -> explicit overrides.
Nested YAML keys are flattened with ``__`` (``LOG: {LEVEL: INFO}`` becomes ``LOG__LEVEL``).
"""
import os
from pathlib import Path
from typing import Optional, Dict, Any, List

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

PROJECT_ROOT = Path(__file__).resolve().parent.parent
CONFIG_DIR = PROJECT_ROOT / "configs"


class InitializationError(Exception):
    """Raised when trying to access settings before they are initialized."""
    pass


_SETTINGS_INSTANCE: Optional['Settings'] = None


def flatten_nested_config(config: Dict[str, Any], parent_key: str = "", separator: str = "__") -> Dict[str, Any]:
    """Flattens nested YAML configuration (e.g., CORS: {ALLOW_ORIGINS: [...]})"""
    flat_config = {}
    for key, value in config.items():
        new_key = f"{parent_key}{separator}{key}" if parent_key else key
        if isinstance(value, dict):
            flat_config.update(flatten_nested_config(value, new_key, separator))
        else:
            flat_config[new_key] = value
    return flat_config


def load_yaml_config(file_path: Path) -> Dict[str, Any]:
    """Loads a YAML file into a flat dict; a missing file yields an empty dict."""
    if not file_path.exists():
        return {}
    with open(file_path, "r", encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}
    return flatten_nested_config(config)


class Settings(BaseSettings):
    """
    Application settings model, loaded from YAML and environment variables.
    Note: Fields use flattened names (e.g., LOG__LEVEL).
    """
    # --------------------------
    # Global
    # --------------------------
    APP_NAME: str = Field(default="liveops-portal", validation_alias="APP_NAME")
    ENV: str = Field(default="dev", validation_alias="ENV")
    DEBUG: bool = Field(default=True, validation_alias="DEBUG")
    HOST: str = Field(default="0.0.0.0", validation_alias="HOST")
    PORT: int = Field(default=8000, validation_alias="PORT")
    API_DOC_PREFIX: str = Field(default="", validation_alias="API_DOC_PREFIX")
    MAX_UPLOAD_SIZE: int = Field(default=10485760, validation_alias="MAX_UPLOAD_SIZE")

    # Database
    DATABASE_URL: str = Field(default="sqlite:///data/liveops.db", validation_alias="DATABASE_URL")
    ECHO_SQL: bool = Field(default=False, validation_alias="ECHO_SQL")

    # JWT
    JWT_ALGORITHM: str = Field(default="HS256", validation_alias="JWT_ALGORITHM")
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(
        default=60 * 24 * 7, validation_alias="JWT_ACCESS_TOKEN_EXPIRE_MINUTES"
    )
    JWT_SECRET_KEY: str = Field(default="CHANGE_ME", validation_alias="JWT_SECRET_KEY")

    # Logging
    LOG__LEVEL: str = Field(default="INFO", validation_alias="LOG__LEVEL")
    LOG__DIR: str = Field(default="logs", validation_alias="LOG__DIR")
    LOG__TO_FILE: bool = Field(default=True, validation_alias="LOG__TO_FILE")
    LOG__FILE_BACKUP_COUNT: int = Field(default=30, validation_alias="LOG__FILE_BACKUP_COUNT")

    # CORS
    CORS__ALLOW_ORIGINS: List[str] = Field(default=["*"], validation_alias="CORS__ALLOW_ORIGINS")
    CORS__ALLOW_CREDENTIALS: bool = Field(default=True, validation_alias="CORS__ALLOW_CREDENTIALS")

    # Identity & access
    AUTH__ADMIN_EMAILS: List[str] = Field(default=[], validation_alias="AUTH__ADMIN_EMAILS")
    AUTH__ADMIN_INVITE_CODE: str = Field(default="", validation_alias="AUTH__ADMIN_INVITE_CODE")
    AUTH__COOKIE_NAME: str = Field(default="access_token", validation_alias="AUTH__COOKIE_NAME")

    # Localization
    I18N__DEFAULT_LANG: str = Field(default="zh", validation_alias="I18N__DEFAULT_LANG")
    I18N__COOKIE_NAME: str = Field(default="NEXT_LOCALE", validation_alias="I18N__COOKIE_NAME")
    I18N__MAX_DEPTH: int = Field(default=32, validation_alias="I18N__MAX_DEPTH")
    I18N__MAX_CONCURRENCY: int = Field(default=8, validation_alias="I18N__MAX_CONCURRENCY")
    I18N__CACHE_SIZE: int = Field(default=4096, validation_alias="I18N__CACHE_SIZE")

    # Translation backends
    TRANSLATION__ENGINE_URL: str = Field(default="", validation_alias="TRANSLATION__ENGINE_URL")
    TRANSLATION__SCRIPT_URL: str = Field(default="", validation_alias="TRANSLATION__SCRIPT_URL")
    TRANSLATION__PRIMARY_BACKEND: str = Field(default="engine", validation_alias="TRANSLATION__PRIMARY_BACKEND")
    TRANSLATION__TIMEOUT_SECONDS: float = Field(default=8.0, validation_alias="TRANSLATION__TIMEOUT_SECONDS")
    TRANSLATION__CALL_DELAY_MS: int = Field(default=100, validation_alias="TRANSLATION__CALL_DELAY_MS")
    TRANSLATION__FALLBACK_DELAY_MS: int = Field(default=200, validation_alias="TRANSLATION__FALLBACK_DELAY_MS")

    # Generative text backend
    GEMINI__API_KEY: str = Field(default="", validation_alias="GEMINI__API_KEY")
    GEMINI__BASE_URL: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta", validation_alias="GEMINI__BASE_URL"
    )
    GEMINI__DEFAULT_MODEL: str = Field(default="gemini-1.5-flash", validation_alias="GEMINI__DEFAULT_MODEL")
    GEMINI__DISCOVER_MODELS: bool = Field(default=True, validation_alias="GEMINI__DISCOVER_MODELS")
    GEMINI__TIMEOUT_SECONDS: float = Field(default=60.0, validation_alias="GEMINI__TIMEOUT_SECONDS")

    # Object storage
    STORAGE__ROOT: str = Field(default="data/storage", validation_alias="STORAGE__ROOT")
    STORAGE__PUBLIC_BASE_URL: str = Field(default="/storage", validation_alias="STORAGE__PUBLIC_BASE_URL")

    # Catalog import
    CATALOG__IMPORT_DELAY_MS: int = Field(default=300, validation_alias="CATALOG__IMPORT_DELAY_MS")

    model_config = SettingsConfigDict(
        env_file=None,
        case_sensitive=False,
        extra="allow",
    )

    @field_validator("TRANSLATION__PRIMARY_BACKEND")
    @classmethod
    def primary_backend_must_be_known(cls, v: str) -> str:
        if v not in ("engine", "script"):
            raise ValueError("TRANSLATION__PRIMARY_BACKEND must be 'engine' or 'script'.")
        return v

    @property
    def admin_emails(self) -> List[str]:
        return [email.strip().lower() for email in self.AUTH__ADMIN_EMAILS if email and email.strip()]


def initialize_settings(overrides: Optional[Dict[str, Any]] = None) -> 'Settings':
    """
    Initializes the global Settings instance. Called once at application startup;
    later calls return the same instance unless ``reset_settings`` ran in between.
    """
    global _SETTINGS_INSTANCE

    if _SETTINGS_INSTANCE is not None:
        return _SETTINGS_INSTANCE

    final_env = os.getenv("ENV") or os.getenv("env") or "dev"

    base_config = load_yaml_config(CONFIG_DIR / "base.yaml")
    env_config = load_yaml_config(CONFIG_DIR / f"{final_env}.yaml")

    file_config = {**base_config, **env_config}
    # Environment variables win over file values.
    file_config = {key: value for key, value in file_config.items() if key.upper() not in os.environ}
    merged_config = {**file_config, "ENV": final_env, **(overrides or {})}

    try:
        instance = Settings(**merged_config)
    except Exception as e:
        raise InitializationError(f"Failed to validate and instantiate settings: {e}") from e

    _SETTINGS_INSTANCE = instance
    return instance


def get_settings() -> 'Settings':
    """
    Retrieves the globally initialized Settings instance.

    Raises:
        InitializationError: If settings have not been initialized.
    """
    if _SETTINGS_INSTANCE is None:
        raise InitializationError(
            "Settings have not been initialized. "
            "Call initialize_settings() first at application startup."
        )
    return _SETTINGS_INSTANCE


def reset_settings() -> None:
    """Drops the singleton so the next initialize_settings() reloads everything."""
    global _SETTINGS_INSTANCE
    _SETTINGS_INSTANCE = None
