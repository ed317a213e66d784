from __future__ import annotations

import os
from functools import lru_cache
from typing import Any, Dict

from dotenv import dotenv_values
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from template_studio.user_config import load_user_config

# environment variable -> settings field
_ENV_KEYS = {
    "DATABASE_URL": "sql_db_url",
    "PORT": "port",
    "LOG_LEVEL": "log_level",
    "LOG_JSON": "log_json",
    "LOG_LEVELS": "log_levels",
    "SQL_ECHO": "sql_echo",
    "CORS_ORIGINS": "cors_origins",
}


def _json_settings_source() -> Dict[str, Any]:
    return load_user_config()


def _limited_env_settings_source() -> Dict[str, Any]:
    env: Dict[str, Any] = {}
    env.update(dotenv_values(".env"))
    env.update(os.environ)
    return {field: env[name] for name, field in _ENV_KEYS.items() if env.get(name) is not None}


class Settings(BaseSettings):
    model_config = SettingsConfigDict(extra="ignore")

    sql_db_url: str = "sqlite:///data/template_studio.db"
    sql_echo: bool = False
    template_dir: str = ""
    preset_file: str = ""

    sample_content_targeting: bool = False
    default_page_limit: int = 20

    cors_origins: str = "*"

    log_level: str = "INFO"
    log_json: bool = False
    # logger name -> level, e.g. {"sqlalchemy.engine": "INFO"}
    log_levels: Dict[str, str] = {}

    port: int = 8000

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.upper()

    @field_validator("log_levels", mode="before")
    @classmethod
    def _parse_log_levels(cls, value: Any) -> Any:
        # LOG_LEVELS=sqlalchemy.engine=INFO,uvicorn.access=WARNING
        if isinstance(value, str):
            pairs = [item.split("=", 1) for item in value.split(",") if "=" in item]
            value = {name.strip(): level.strip() for name, level in pairs}
        if isinstance(value, dict):
            return {name: str(level).upper() for name, level in value.items()}
        return value

    @classmethod
    def settings_customise_sources(
        cls, settings_cls, init_settings, env_settings, dotenv_settings, file_secret_settings
    ):
        return (
            init_settings,
            _json_settings_source,
            _limited_env_settings_source,
            file_secret_settings,
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
