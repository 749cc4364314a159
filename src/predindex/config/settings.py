"""TOML config loading, profiles and environment overrides."""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path
from typing import Any

from predindex.errors import ConfigurationError

# Default config search path (project root or cwd)
_CONFIG_DIR = Path(__file__).resolve().parent.parent.parent.parent / "config"
_CWD_CONFIG = Path.cwd() / "config"

SUI_TESTNET_RPC = "https://fullnode.testnet.sui.io:443"

# Environment variable -> (section, key)
_ENV_OVERRIDES = {
    "PACKAGE_ID": ("chain", "package_id"),
    "SUI_NETWORK": ("chain", "rpc_url"),
    "SIGNER_URL": ("expiry", "signer_url"),
    "PREDINDEX_DB_PATH": ("storage", "db_path"),
}


def _load_toml(path: Path) -> dict[str, Any]:
    with open(path, "rb") as f:
        return tomllib.load(f)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override into base. Override values take precedence."""
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _find_config_dir(config_dir: Path | None = None) -> Path:
    if config_dir is not None:
        return config_dir
    if _CWD_CONFIG.exists():
        return _CWD_CONFIG
    return _CONFIG_DIR


def _apply_env(raw: dict[str, Any], environ: dict[str, str] | None = None) -> dict[str, Any]:
    env = os.environ if environ is None else environ
    overlay: dict[str, Any] = {}
    for var, (section, key) in _ENV_OVERRIDES.items():
        value = env.get(var)
        if value:
            overlay.setdefault(section, {})[key] = value
    return _deep_merge(raw, overlay) if overlay else raw


def load_config(profile: str | None = None, config_dir: Path | None = None) -> dict[str, Any]:
    """Load merged config from default.toml and optional profile overlay."""
    config_dir = _find_config_dir(config_dir)
    default_path = config_dir / "default.toml"
    base: dict[str, Any] = _load_toml(default_path) if default_path.exists() else {}
    if profile:
        profile_path = config_dir / f"{profile}.toml"
        if profile_path.exists():
            overlay = _load_toml(profile_path)
            base = _deep_merge(base, overlay)
    return base


def get_settings(
    profile: str | None = None,
    config_dir: Path | None = None,
    environ: dict[str, str] | None = None,
) -> Settings:
    """Return Settings instance from merged config plus environment overrides."""
    raw = _apply_env(load_config(profile, config_dir), environ)
    return Settings.from_dict(raw)


class Settings:
    """Application settings from TOML config."""

    def __init__(
        self,
        *,
        storage: dict[str, Any] | None = None,
        chain: dict[str, Any] | None = None,
        indexer: dict[str, Any] | None = None,
        expiry: dict[str, Any] | None = None,
        api: dict[str, Any] | None = None,
        logging: dict[str, Any] | None = None,
    ):
        self.storage = storage or {}
        self.chain = chain or {}
        self.indexer = indexer or {}
        self.expiry = expiry or {}
        self.api = api or {}
        self.logging = logging or {}

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Settings:
        return cls(
            storage=raw.get("storage"),
            chain=raw.get("chain"),
            indexer=raw.get("indexer"),
            expiry=raw.get("expiry"),
            api=raw.get("api"),
            logging=raw.get("logging"),
        )

    # Convenience accessors with defaults
    @property
    def db_path(self) -> str:
        return self.storage.get("db_path", "data/predindex.duckdb")

    @property
    def rpc_url(self) -> str:
        return self.chain.get("rpc_url", SUI_TESTNET_RPC)

    @property
    def package_id(self) -> str | None:
        value = (self.chain.get("package_id") or "").strip()
        return value or None

    @property
    def module(self) -> str:
        return self.chain.get("module", "market")

    @property
    def request_timeout_sec(self) -> float:
        return float(self.chain.get("request_timeout_sec", 10.0))

    @property
    def event_page_size(self) -> int:
        return int(self.chain.get("event_page_size", 50))

    @property
    def indexer_interval_sec(self) -> float:
        return float(self.indexer.get("interval_sec", 2.0))

    @property
    def trigger_buffer(self) -> int:
        return int(self.indexer.get("trigger_buffer", 100))

    @property
    def expiry_interval_sec(self) -> float:
        return float(self.expiry.get("interval_sec", 30.0))

    @property
    def signer_url(self) -> str | None:
        value = (self.expiry.get("signer_url") or "").strip()
        return value or None

    @property
    def api_host(self) -> str:
        return self.api.get("host", "127.0.0.1")

    @property
    def api_port(self) -> int:
        return int(self.api.get("port", 8000))

    @property
    def logging_level(self) -> str:
        return self.logging.get("level", "INFO").upper()

    @property
    def logging_format(self) -> str:
        return self.logging.get("format", "console")

    @property
    def logging_level_num(self) -> int:
        return getattr(logging, self.logging_level, logging.INFO)

    def require_package_id(self) -> str:
        """Return the deployed package id or raise ConfigurationError."""
        if not self.package_id:
            raise ConfigurationError(
                "chain.package_id is not set (config/default.toml or PACKAGE_ID env var)"
            )
        return self.package_id


def configure_logging(settings: Settings) -> None:
    """Configure structlog with settings. Call once at application entry."""
    import structlog

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    if settings.logging_format == "json":
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(settings.logging_level_num),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
