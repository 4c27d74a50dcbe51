"""Client configuration loading and validation."""

from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, ClassVar, Dict, Iterable, Literal

import yaml
from pydantic import Field, PositiveFloat, PositiveInt
from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from obsws.protocol.constants import EventSubscription

DEFAULT_CONFIG_LOCATIONS: tuple[Path, ...] = (
    Path("./config/obsws.yaml"),
    Path("./config/obsws.yml"),
)


class ClientSettings(BaseSettings):
    """Validated settings for an OBS WebSocket session."""

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_prefix="OBSWS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Connection + identity
    url: str = Field(
        default="ws://localhost:4455",
        description="OBS WebSocket endpoint used when connect() is called without a url.",
    )
    password: str | None = Field(
        default=None,
        description="Password used to answer the Hello authentication challenge.",
        repr=False,
    )
    event_subscriptions: int = Field(
        default=int(EventSubscription.ALL),
        ge=0,
        description="Event subscription bitmask sent with Identify and Reidentify.",
    )
    subprotocol: str = Field(
        default="obswebsocket.json",
        description="WebSocket subprotocol requested when opening the transport.",
    )
    open_timeout_seconds: PositiveFloat = Field(
        default=10.0,
        description="Seconds allowed for the transport opening handshake.",
    )
    max_message_bytes: PositiveInt = Field(
        default=16 * 1024 * 1024,
        description="Largest inbound frame accepted by the WebSocket transport.",
    )

    # Reconnection backoff
    reconnect_base_delay_seconds: PositiveFloat = Field(
        default=1.0,
        description="Delay before the first reconnect signal after an abnormal close.",
    )
    reconnect_max_delay_seconds: PositiveFloat = Field(
        default=30.0,
        description="Upper bound for the doubling reconnect delay.",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Minimum log level used by bundled scripts.",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        if isinstance(value, str):
            return value.upper()
        return value

    @model_validator(mode="after")
    def _check_backoff_bounds(self) -> "ClientSettings":
        if self.reconnect_max_delay_seconds < self.reconnect_base_delay_seconds:
            raise ValueError("reconnect_max_delay_seconds must be >= reconnect_base_delay_seconds")
        return self

    config_path: Path | None = Field(
        default=None,
        description="Resolved path to the on-disk config that seeded the settings.",
        exclude=True,
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[ClientSettings],
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
    def _yaml_settings_source(settings_cls: type[ClientSettings] | None = None) -> Dict[str, Any]:
        for path in ClientSettings._resolve_candidate_paths():
            data = ClientSettings._load_file(path)
            if data is not None:
                data.setdefault("config_path", path)
                return data
        return {}

    @staticmethod
    def _resolve_candidate_paths() -> Iterable[Path]:
        explicit = os.getenv("OBSWS_CONFIG_FILE")
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
            raise RuntimeError(f"Failed to read obsws config file {path}") from exc
        except (yaml.YAMLError, json.JSONDecodeError) as exc:
            raise ValueError(f"Invalid obsws config file {path}") from exc

        if raw is None:
            return {}
        if not isinstance(raw, dict):
            raise ValueError(f"obsws config file {path} must contain a mapping at top level.")
        return raw


@lru_cache()
def get_settings() -> ClientSettings:
    """Return memoized client settings."""

    return ClientSettings()
