"""Configuration loader: reads config.yaml, validates with Pydantic.

Secrets never live in the YAML file: the model API key is read from the
environment at call time, and MONGODB_URI / PORT override their YAML values
when set (a local ``.env`` file is honoured).
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Literal

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent.parent
MIN_BCRYPT_ROUNDS = 10


class ServerConfig(BaseModel):
    """HTTP surface: bind address, static pages, CORS and log level."""

    host: str = "0.0.0.0"
    port: int = 3000
    static_dir: str = "public"
    landing_page: str = "/register.html"
    allowed_origins: list[str] = ["*"]
    log_level: str = "INFO"


class ModelConfig(BaseModel):
    """Upstream chat-completion API."""

    name: str = "deepseek-reasoner"
    base_url: str = "https://api.deepseek.com"
    api_key_env: str = "DEEPSEEK_API_KEY"
    timeout: float | None = 300.0  # seconds for a whole streamed answer; null disables

    @field_validator("timeout")
    @classmethod
    def positive_timeout(cls, v: float | None) -> float | None:
        if v is not None and v <= 0:
            raise ValueError("model.timeout must be positive or null")
        return v


class MongoConfig(BaseModel):
    uri: str = "mongodb://localhost:27017/smash"
    database: str = "smash"  # used when the URI names no database
    users_collection: str = "users"
    history_collection: str = "history"
    server_selection_timeout_ms: int = 5000


class AccountsConfig(BaseModel):
    backend: Literal["mongo", "memory"] = "mongo"
    bcrypt_rounds: int = MIN_BCRYPT_ROUNDS

    @field_validator("bcrypt_rounds")
    @classmethod
    def slow_enough(cls, v: int) -> int:
        if v < MIN_BCRYPT_ROUNDS:
            raise ValueError(
                f"accounts.bcrypt_rounds must be at least {MIN_BCRYPT_ROUNDS}, got {v}"
            )
        return v


class HistoryConfig(BaseModel):
    backend: Literal["memory", "mongo"] = "memory"


class PipelineConfig(BaseModel):
    locale: str = "Chinese"  # natural language for explanations and comments


class AppConfig(BaseModel):
    """Top-level configuration."""

    server: ServerConfig = ServerConfig()
    model: ModelConfig = ModelConfig()
    mongo: MongoConfig = MongoConfig()
    accounts: AccountsConfig = AccountsConfig()
    history: HistoryConfig = HistoryConfig()
    pipeline: PipelineConfig = PipelineConfig()

    # Directory relative paths in this config resolve against.
    base_dir: Path = PROJECT_ROOT

    def static_path(self) -> Path:
        """Absolute path of the static file directory."""
        path = Path(self.server.static_dir)
        if not path.is_absolute():
            path = self.base_dir / path
        return path

    def api_key(self) -> str | None:
        """Return the model API key from the environment, or None if unset."""
        return os.environ.get(self.model.api_key_env) or None


def apply_env_overrides(config: AppConfig) -> AppConfig:
    """Let MONGODB_URI and PORT from the environment win over the YAML file."""
    if uri := os.environ.get("MONGODB_URI"):
        config.mongo.uri = uri
    if port := os.environ.get("PORT"):
        config.server.port = int(port)
    return config


def default_config_path() -> str:
    return os.environ.get("CODEASSIST_CONFIG", str(PROJECT_ROOT / "config.yaml"))


def load_config(path: str | None = None) -> AppConfig:
    """Read config.yaml from disk, validate, and apply env overrides."""
    load_dotenv()
    path = path or default_config_path()

    config_file = Path(path)
    if not config_file.exists():
        raise FileNotFoundError(f"Config file not found: {config_file.resolve()}")

    raw = yaml.safe_load(config_file.read_text()) or {}
    config = apply_env_overrides(
        AppConfig(**raw, base_dir=config_file.resolve().parent)
    )

    logger.info(
        f"Loaded config from {config_file}: model={config.model.name}, "
        f"accounts={config.accounts.backend}, history={config.history.backend}"
    )
    return config
