"""Unified settings — CLI flags, env vars, .env and TOML config in one object.

Priority chain (highest to lowest):
  1. Init kwargs  — CLI flags passed by Click
  2. Env vars     — ``STELLAR_*`` prefix, ``__`` for nested fields
  3. ``.env``     — same names as env vars
  4. TOML file    — ``--config`` path, or ``config/default.toml`` if present
  5. Code defaults

Settings are read once at startup and frozen.
"""

from __future__ import annotations

import threading
import tomllib
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, SecretStr, ValidationError
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from stellar_remit.errors import ConfigError
from stellar_remit.models import MIN_BASE_FEE
from stellar_remit.retry import RetryPolicy
from stellar_remit.signer import TESTNET_PASSPHRASE

DEFAULT_CONFIG_PATH = Path("config") / "default.toml"


class RetryConfig(BaseModel):
    """Backoff for the account sequence lookup."""

    model_config = {"frozen": True}

    base_delay_ms: int = Field(default=300, ge=0)
    multiplier: float = Field(default=2.0, ge=1.0)
    max_delay_ms: int = Field(default=2000, ge=0)
    max_attempts: int = Field(default=3, ge=1)

    def to_policy(self) -> RetryPolicy:
        return RetryPolicy(
            base_delay_s=self.base_delay_ms / 1000,
            multiplier=self.multiplier,
            max_delay_s=self.max_delay_ms / 1000,
            max_attempts=self.max_attempts,
        )


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Read settings from a TOML file, if one was given or found."""

    def __init__(self, settings_cls: type[BaseSettings], toml_path: Path | None) -> None:
        super().__init__(settings_cls)
        self._data: dict[str, Any] = {}
        if toml_path and toml_path.is_file():
            raw = toml_path.read_text(encoding="utf-8")
            try:
                self._data = tomllib.loads(raw)
            except tomllib.TOMLDecodeError as exc:
                raise ConfigError(f"invalid TOML in {toml_path}: {exc}") from exc

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        val = self._data.get(field_name)
        return val, field_name, field_name in self._data

    def __call__(self) -> dict[str, Any]:
        return self._data


# Thread-local storage for TOML path during construction.
_tls = threading.local()


class RemitSettings(BaseSettings):
    """Everything one payment run needs from the outside world.

    Attributes:
        horizon_url: Horizon gateway base URL.
        sender_secret: ``S...`` secret seed of the paying account.
        receiver_address: ``G...`` address of the destination.
        amount: Amount in stroops.
        memo: Text memo (at most 28 bytes); empty string for none.
        fee: Fee per operation in stroops.
        network_passphrase: Network the signature is bound to.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "STELLAR_",
        "env_nested_delimiter": "__",
        "env_file": ".env",
        "extra": "ignore",
    }

    horizon_url: str
    sender_secret: SecretStr
    receiver_address: str

    amount: int = 1_000_000
    memo: str = "Remittance"
    fee: int = MIN_BASE_FEE
    network_passphrase: str = TESTNET_PASSPHRASE

    timeout_s: float = Field(default=30.0, gt=0)
    retry: RetryConfig = Field(default_factory=RetryConfig)

    serve_health: bool = True
    health_host: str = "127.0.0.1"
    health_port: int = Field(default=3000, ge=0, le=65535)

    verbose: bool = False
    log_json: bool = False

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Insert the TOML source between .env and defaults."""
        toml_path = getattr(_tls, "toml_path", None)
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            TomlSettingsSource(settings_cls, toml_path),
        )

    @classmethod
    def from_cli(cls, *, config_path: str | None = None, **cli_flags: Any) -> RemitSettings:
        """Construct settings from a CLI invocation.

        ``None``-valued flags are dropped so they never shadow env or
        file values.

        Raises:
            ConfigError: Missing or invalid settings, or an explicit
                ``config_path`` that does not exist.
        """
        toml_path: Path | None
        if config_path:
            toml_path = Path(config_path)
            if not toml_path.is_file():
                raise ConfigError(f"config file not found: {config_path}")
        else:
            toml_path = DEFAULT_CONFIG_PATH if DEFAULT_CONFIG_PATH.is_file() else None

        overrides = {k: v for k, v in cli_flags.items() if v is not None}

        _tls.toml_path = toml_path
        try:
            return cls(**overrides)
        except ValidationError as exc:
            raise ConfigError(_summarise(exc), details={"errors": exc.errors()}) from exc
        finally:
            _tls.toml_path = None


def load_settings(config_path: str | None = None, **overrides: Any) -> RemitSettings:
    """Load settings from env, ``.env`` and TOML with optional overrides."""
    return RemitSettings.from_cli(config_path=config_path, **overrides)


def _summarise(exc: ValidationError) -> str:
    fields = []
    for error in exc.errors():
        name = ".".join(str(part) for part in error.get("loc", ())) or "settings"
        fields.append(f"{name} ({error.get('msg', 'invalid')})")
    return "invalid configuration: " + "; ".join(fields)
