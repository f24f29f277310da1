"""Settings module with unified configuration precedence: CLI > ENV > CONFIG FILE."""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit, urlunsplit

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from .constants import (
    BATCH_DELAY_SECONDS,
    CACHE_DURATION_SECONDS,
    CACHE_MAX_ENTRIES,
    MAX_CONCURRENT_REQUESTS,
    PRIORITY_CHAINS,
    RPC_TIMEOUT_SECONDS,
    RPC_URL_ENV_PREFIX,
)

load_dotenv()


class RpcUrlEnvSource(PydanticBaseSettingsSource):
    """Collect per-chain ``RPC_URL_<chainId>`` environment variables into ``rpc_urls``."""

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        return None, "", False

    def __call__(self) -> dict[str, Any]:
        rpc_urls: dict[str, str] = {}
        for key, value in os.environ.items():
            if not key.startswith(RPC_URL_ENV_PREFIX):
                continue
            chain_id = key[len(RPC_URL_ENV_PREFIX) :]
            if chain_id.isdigit():
                rpc_urls[chain_id] = value
        if not rpc_urls:
            return {}
        return {"rpc_urls": rpc_urls}


class TomlConfigSource(PydanticBaseSettingsSource):
    def __init__(self, settings_cls: type[BaseSettings], path: Path | None):
        super().__init__(settings_cls)
        self._path = path

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        return None, "", False

    def __call__(self) -> dict[str, Any]:
        if not self._path:
            # Try default locations
            local_config = Path("stable-balances.toml")
            user_config = Path.home() / ".config" / "stable-balances" / "config.toml"
            if local_config.exists():
                self._path = local_config
            elif user_config.exists():
                self._path = user_config
            else:
                return {}

        if not self._path.exists():
            return {}

        with self._path.open("rb") as f:
            data = tomllib.load(f)  # supports top-level or [stable_balances]
        body = data.get("stable_balances", data)
        if not isinstance(body, dict):
            return {}

        rpc_urls = body.get("rpc_urls")
        if isinstance(rpc_urls, dict):
            # TOML keys are always strings; keep them that way so they merge
            # with the env source before validation.
            body["rpc_urls"] = {str(k): v for k, v in rpc_urls.items()}
        return body


class BalanceSettings(BaseSettings):
    """Single source of truth for configuration. Values may come from:
    - CLI (init kwargs)
    - ENV / .env (prefixed with STABLE_BALANCES_)
    - RPC_URL_<chainId> variables for per-chain endpoints
    - Config file (TOML), lowest precedence

    Do not read os.environ or files elsewhere in the codebase.
    """

    # --- chain endpoints ---
    rpc_urls: dict[int, str] = Field(default_factory=dict)
    priority_chains: list[int] = Field(default_factory=lambda: list(PRIORITY_CHAINS))

    # --- fetch tuning ---
    max_concurrent_requests: int = Field(default=MAX_CONCURRENT_REQUESTS, gt=0)
    batch_delay: float = Field(
        default=BATCH_DELAY_SECONDS,
        ge=0,
        description="Pause between consecutive batches to one provider (seconds).",
    )
    rpc_timeout: float = Field(
        default=RPC_TIMEOUT_SECONDS,
        gt=0,
        description="Deadline for each decimals()/balanceOf() read (seconds).",
    )

    # --- cache ---
    cache_duration: float = Field(default=CACHE_DURATION_SECONDS, gt=0)
    cache_max_entries: int = Field(default=CACHE_MAX_ENTRIES, gt=0)

    # --- http server ---
    host: str = "127.0.0.1"
    port: int = Field(default=8000, gt=0, lt=65536)

    # --- logging ---
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="STABLE_BALANCES_",
        env_file=".env",
        extra="ignore",  # ignore unknown keys in env/config file
    )

    @field_validator("rpc_urls", mode="before")
    @classmethod
    def drop_blank_rpc_urls(cls, v: Any) -> Any:
        """Strip endpoints and drop blank ones so they count as unconfigured."""
        if not isinstance(v, dict):
            return v
        return {
            key: value.strip()
            for key, value in v.items()
            if isinstance(value, str) and value.strip()
        }

    @field_validator("rpc_urls")
    @classmethod
    def validate_chain_ids(cls, v: dict[int, str]) -> dict[int, str]:
        invalid = [chain_id for chain_id in v if chain_id <= 0]
        if invalid:
            raise ValueError(f"Chain ids must be positive integers, got {invalid}")
        return v

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return v.upper()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Custom sources with explicit precedence: CLI > ENV > RPC_URL_* > FILE."""
        env_cfg = os.environ.get("STABLE_BALANCES_CONFIG")
        cfg_path = Path(env_cfg) if env_cfg else None

        return (
            init_settings,  # CLI (highest)
            env_settings,  # ENV
            RpcUrlEnvSource(settings_cls),  # RPC_URL_<chainId>
            TomlConfigSource(settings_cls, cfg_path),  # CONFIG (lowest)
            file_secret_settings,  # optional secrets dir
        )

    def rpc_url_for(self, chain_id: int) -> str:
        """Return the configured endpoint for a chain, or "" when unconfigured."""
        return self.rpc_urls.get(chain_id, "")

    def as_safe_dict(self) -> dict[str, Any]:
        """Return the config as a dict with RPC credentials redacted.

        Hosted RPC endpoints carry API keys in the path or query string, so
        only scheme and host are kept.
        """
        data = self.model_dump()
        data["rpc_urls"] = {
            chain_id: _redact_url(url) for chain_id, url in self.rpc_urls.items()
        }
        return data


def _redact_url(url: str) -> str:
    parts = urlsplit(url)
    if not parts.hostname:
        return "***redacted***"
    netloc = parts.hostname if parts.port is None else f"{parts.hostname}:{parts.port}"
    redacted_path = "/***redacted***" if parts.path.strip("/") or parts.query else ""
    return urlunsplit((parts.scheme, netloc, redacted_path, "", ""))
