"""Settings module with unified configuration precedence: CLI > ENV > CONFIG FILE."""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from .constants import (
    BLOCKS_PER_DAY,
    DEFAULT_RECEIPT_TIMEOUT,
    HISTORY_LOOKBACK_DAYS,
    HISTORY_PAGE_SIZE,
)

load_dotenv()

SECRET_FIELDS = {"private_key"}


class RevampSettings(BaseSettings):
    """Single source of truth for configuration. Values may come from:
    - CLI (init kwargs)
    - ENV / .env (prefixed with REVAMP_)
    - Config file (TOML), lowest precedence

    Do not read os.environ or files elsewhere in the codebase.
    """

    # --- network selection ---
    selected_chain_id: int | None = None

    # --- per-chain overrides (chain id -> value) ---
    rpc_urls: dict[int, str] = Field(default_factory=dict)
    revamp_addresses: dict[int, str] = Field(default_factory=dict)
    shareholding_addresses: dict[int, str] = Field(default_factory=dict)

    # --- signing ---
    private_key: SecretStr | None = None

    # --- transactions ---
    receipt_timeout: float = Field(default=DEFAULT_RECEIPT_TIMEOUT, gt=0)
    confirmations: int = Field(default=1, ge=1)

    # --- price history ---
    blocks_per_day: int = Field(default=BLOCKS_PER_DAY, gt=0)
    history_lookback_days: int = Field(default=HISTORY_LOOKBACK_DAYS, gt=0)
    history_page_size: int = Field(default=HISTORY_PAGE_SIZE, gt=0)

    # --- RPC settings ---
    rpc_max_concurrent_calls: int = Field(default=5, gt=0)
    rpc_delay: float = 0.15
    rpc_jitter: float = 0.10
    rpc_timeout: float = 15.0

    # --- logging ---
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="REVAMP_",
        env_file=".env",
        extra="ignore",  # ignore unknown keys in env/config file
    )

    @field_validator("private_key", mode="before")
    @classmethod
    def wrap_secrets(cls, v: Any) -> SecretStr | None:
        """Wrap string secrets in SecretStr."""
        if v is None or isinstance(v, SecretStr):
            return v
        return SecretStr(v)

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.upper()
        return v

    @model_validator(mode="after")
    def validate_rpc_throttle(self) -> "RevampSettings":
        """Reject negative throttle values."""
        if self.rpc_delay < 0 or self.rpc_jitter < 0:
            raise ValueError(
                f"rpc_delay ({self.rpc_delay}) and rpc_jitter ({self.rpc_jitter}) "
                "must not be negative"
            )
        return self

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Custom config-file source with explicit precedence: CLI > ENV > FILE."""
        env_cfg = os.environ.get("REVAMP_CONFIG")
        cfg_path = Path(env_cfg) if env_cfg else None

        class TomlConfigSource(PydanticBaseSettingsSource):
            def __init__(self, settings_cls: type[BaseSettings], path: Path | None):
                super().__init__(settings_cls)
                self._path = path

            def get_field_value(
                self, field: Any, field_name: str
            ) -> tuple[Any, str, bool]:
                return None, "", False

            def __call__(self) -> dict[str, Any]:
                if not self._path:
                    # Try default locations
                    local_config = Path("revamp.toml")
                    user_config = Path.home() / ".config" / "revamp" / "config.toml"
                    if local_config.exists():
                        self._path = local_config
                    elif user_config.exists():
                        self._path = user_config
                    else:
                        return {}

                if not self._path.exists():
                    return {}

                with self._path.open("rb") as f:
                    data = tomllib.load(f)  # supports top-level or [revamp]
                body = data.get("revamp", data)
                if not isinstance(body, dict):
                    return {}

                for key in SECRET_FIELDS:
                    if key in body:
                        raise ValueError(
                            f"Security violation: '{key}' found in TOML config file. "
                            f"Secrets must only be provided via environment variables or CLI flags."
                        )

                return body

        return (
            init_settings,  # CLI (highest)
            env_settings,  # ENV
            dotenv_settings,  # .env
            TomlConfigSource(settings_cls, cfg_path),  # CONFIG (lowest)
            file_secret_settings,  # optional secrets dir
        )

    def as_safe_dict(self) -> dict[str, Any]:
        """Return the config as a dict with secrets redacted."""
        data = self.model_dump()
        if self.private_key:
            data["private_key"] = "***redacted***"
        return data

    @property
    def private_key_required(self) -> str:
        """Get the signing key, raising ValueError if not set."""
        if self.private_key is None:
            raise ValueError("private_key must be configured")
        return self.private_key.get_secret_value()
