"""Keeper configuration loading and validation."""

from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, ClassVar, Dict, Iterable, Literal

import yaml
from pydantic import AnyUrl, Field, NonNegativeFloat, NonNegativeInt, PositiveFloat
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CONFIG_LOCATIONS: tuple[Path, ...] = (
    Path("/etc/keeper/keeper.yaml"),
    Path("/etc/keeper/keeper.yml"),
    Path("./config/keeper.yaml"),
    Path("./config/keeper.yml"),
)


def _default_sentry_file() -> Path:
    return Path(__file__).resolve().parents[1] / "sentry.bin"


class KeeperSettings(BaseSettings):
    """Validated settings for the session keeper."""

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_prefix="KEEPER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Account
    username: str = Field(
        default="",
        description="Account name used for logon.",
    )
    password: str = Field(
        default="",
        description="Account password used for logon.",
        repr=False,
    )
    full_run: bool = Field(
        default=False,
        description="Run an initial full catalog synchronization instead of periodic polling.",
    )

    # Transport
    transport: Literal["dummy", "websocket"] = Field(
        default="websocket",
        description="Transport implementation bridging to the protocol SDK.",
    )
    gateway_ws_url: AnyUrl = Field(
        default="ws://localhost:8765/session",
        description="WebSocket endpoint of the SDK bridge process.",
    )

    # Reliability
    retry_delay_seconds: NonNegativeFloat = Field(
        default=15,
        description="Fixed delay before reconnecting after an unplanned disconnect.",
    )
    logon_failure_cooldown_seconds: NonNegativeFloat = Field(
        default=2,
        description="Cool-down applied after a logon failure that is not two-factor related.",
    )
    poll_interval_seconds: PositiveFloat = Field(
        default=1,
        description="Tick interval of the periodic polling timer while logged on.",
    )

    # Reporting
    service_name: str = Field(
        default="Steam",
        description="Human readable service name used in announcements.",
    )
    status_url: str = Field(
        default="https://steamstat.us",
        description="Public status page referenced in disconnect/logoff announcements.",
    )
    status_channel_id: NonNegativeInt = Field(
        default=0,
        description="Status reporter channel that receives connection state updates.",
    )

    # Runtime layout
    sentry_file: Path = Field(
        default_factory=_default_sentry_file,
        description="Location of the persisted device credential.",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Minimum log level for the keeper process.",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        if isinstance(value, str):
            return value.upper()
        return value

    config_path: Path | None = Field(
        default=None,
        description="Resolved path to the on-disk config that seeded the settings.",
        exclude=True,
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[KeeperSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            init_settings,
            cls._yaml_settings_source,
            env_settings,
            dotenv_settings,
            file_secret_settings,
        )

    @staticmethod
    def _yaml_settings_source(settings_cls: type[KeeperSettings] | None = None) -> Dict[str, Any]:
        candidates: Iterable[Path] = KeeperSettings._resolve_candidate_paths()

        for path in candidates:
            data = KeeperSettings._load_file(path)
            if data is not None:
                data.setdefault("config_path", path)
                return data
        return {}

    @staticmethod
    def _resolve_candidate_paths() -> Iterable[Path]:
        explicit = os.getenv("KEEPER_CONFIG_FILE")
        if explicit:
            yield Path(explicit).expanduser()
        yield from DEFAULT_CONFIG_LOCATIONS

    @staticmethod
    def _load_file(path: Path) -> Dict[str, Any] | None:
        if not path.is_file():
            return None
        suffix = path.suffix.lower()
        try:
            with path.open("r", encoding="utf-8") as handle:
                if suffix in {".yaml", ".yml"}:
                    raw = yaml.safe_load(handle)
                elif suffix == ".json":
                    raw = json.load(handle)
                else:
                    return None
        except OSError as exc:
            raise RuntimeError(f"Failed to read keeper config file {path}") from exc
        except (yaml.YAMLError, json.JSONDecodeError) as exc:
            raise ValueError(f"Invalid keeper config file {path}") from exc

        if raw is None:
            return {}
        if not isinstance(raw, dict):
            raise ValueError(f"Keeper config file {path} must contain a mapping at top level.")
        return raw


@lru_cache()
def get_settings() -> KeeperSettings:
    """Return memoized keeper settings."""

    settings = KeeperSettings()
    # Ensure path fields are absolute for downstream use
    settings.sentry_file = settings.sentry_file.expanduser().resolve()
    return settings
