"""
Settings loader: merges init kwargs, environment variables (FISKAL_ prefix), .env
and a config.json in the working directory (or the path in CONFIG_FILE).

Public interface:
- Environment: target fiscalization environment with its endpoint URLs
- Config: settings class
- config: Config singleton
Internal helpers:
- Config.settings_customise_sources: source precedence
- Config.parse_environment: accepts "test"/"production" in any case, or a bool
"""

from __future__ import annotations

import json
import os
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Tuple

from loguru import logger
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict, PydanticBaseSettingsSource


CITIZEN_COUPON_PATH = "/citizen/coupon"
POS_COUPON_PATH = "/pos/coupon"

_BASE_URLS = {
    "test": "https://fiskalizimi-test.atk-ks.org",
    "production": "https://fiskalizimi.atk-ks.org",
}


class Environment(str, Enum):
    TEST = "test"
    PRODUCTION = "production"

    @property
    def base_url(self) -> str:
        return _BASE_URLS[self.value]

    @property
    def citizen_coupon_url(self) -> str:
        return self.base_url + CITIZEN_COUPON_PATH

    @property
    def pos_coupon_url(self) -> str:
        return self.base_url + POS_COUPON_PATH


class Config(BaseSettings):
    environment: Environment = Environment.TEST
    citizen_id: int = 1
    request_timeout: float = 10.0
    log_level: str = "INFO"

    # identity of this point of sale, used for the CSR
    country: str = "RKS"
    business_name: str = "TEST CORP"
    nui: int = 510600700
    branch_id: int = 1
    pos_id: int = 1

    private_key_file: str | None = None
    output_dir: str | None = None

    model_config = SettingsConfigDict(
        env_prefix="FISKAL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("environment", mode="before")
    @classmethod
    def parse_environment(cls, value: Any) -> Any:
        """Accept the legacy "is production" flag (bool or "true"/"1"/"false"/"0") as well as the enum names."""
        if isinstance(value, bool):
            return Environment.PRODUCTION if value else Environment.TEST
        if isinstance(value, str):
            text = value.strip().lower()
            if text in {"prod", "production", "true", "1"}:
                return Environment.PRODUCTION
            if text in {"test", "false", "0"}:
                return Environment.TEST
        return value

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        """Precedence: init kwargs > env > .env > config.json > secrets."""

        class JsonFileSettingsSource(PydanticBaseSettingsSource):
            """Reads config.json from the working directory, or the CONFIG_FILE path."""

            def __init__(self, settings_cls):
                super().__init__(settings_cls)
                self._data: Dict[str, Any] | None = None

            def _load(self) -> None:
                if self._data is not None:
                    return
                cfg_path = os.environ.get("CONFIG_FILE")
                path = Path(cfg_path) if cfg_path else Path.cwd() / "config.json"
                if not path.exists():
                    self._data = {}
                    return
                try:
                    with path.open("r", encoding="utf-8") as f:
                        data = json.load(f)
                except (OSError, json.JSONDecodeError) as e:
                    logger.warning(f"Ignoring unreadable config file {path}: {e}")
                    data = {}
                self._data = data if isinstance(data, dict) else {}

            def __call__(self) -> Dict[str, Any]:
                self._load()
                return dict(self._data or {})

            def get_field_value(self, field, field_name):  # type: ignore[override]
                self._load()
                data = self._data or {}
                if field_name in data:
                    return data[field_name], field_name, True
                return None, field_name, False

        return (
            init_settings,
            env_settings,
            dotenv_settings,
            JsonFileSettingsSource(settings_cls),
            file_secret_settings,
        )


config = Config()
