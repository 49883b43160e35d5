"""Configuration management for the marketplace service.

Loads from YAML config file with environment variable overrides.
Pattern: CONFIG__{SECTION}__{KEY} overrides nested YAML keys.
Example: CONFIG__MIRROR__ENABLED=true

Secrets come from dedicated env vars (DATABASE_URL, JWT_SECRET_KEY,
RESEND_API_KEY, MONGODB_DATA_API_KEY, MONGODB_DATA_API_URL).
"""

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field


# --- Sections ---


class DatabaseConfig(BaseModel):
    url: str = "sqlite:///data/skillsync.db"
    echo: bool = False


class AuthConfig(BaseModel):
    secret_key: str = "change-me-in-production"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 1440  # 24 hours


class EmailConfig(BaseModel):
    enabled: bool = True
    api_url: str = "https://api.resend.com/emails"
    api_key: str = ""
    sender: str = "Skill Sync <notifications@resend.dev>"


class MirrorConfig(BaseModel):
    enabled: bool = False
    backend: str = "local"  # local / mongo_data_api
    local_dir: str = "data/mirror"
    api_url: str = ""
    api_key: str = ""
    data_source: str = "Cluster0"
    database: str = "skill_sync"
    collection: str = "projects"
    max_attempts: int = Field(default=5, ge=1)
    base_delay: float = Field(default=1.0, ge=0)
    max_delay: float = Field(default=60.0, ge=0)
    queue_size: int = Field(default=1000, ge=1)


class CorsConfig(BaseModel):
    allow_origins: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]


class LoggingConfig(BaseModel):
    level: str = "INFO"
    format: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"


# --- Service Config ---


class ServiceConfig(BaseModel):
    database: DatabaseConfig = DatabaseConfig()
    auth: AuthConfig = AuthConfig()
    email: EmailConfig = EmailConfig()
    mirror: MirrorConfig = MirrorConfig()
    cors: CorsConfig = CorsConfig()
    logging: LoggingConfig = LoggingConfig()


def _apply_env_overrides(config_dict: dict, prefix: str = "CONFIG") -> dict:
    """Apply environment variable overrides to config dict.

    Pattern: CONFIG__SECTION__KEY=value maps to config[section][key] = value
    """
    for key, value in os.environ.items():
        if not key.startswith(f"{prefix}__"):
            continue
        parts = key[len(prefix) + 2 :].lower().split("__")
        target = config_dict
        for part in parts[:-1]:
            target = target.setdefault(part, {})
        # Type coercion for common cases
        if value.lower() in ("true", "false"):
            value = value.lower() == "true"
        elif value.isdigit():
            value = int(value)
        target[parts[-1]] = value
    return config_dict


# env var -> (section, key)
_SECRET_ENV_VARS = {
    "DATABASE_URL": ("database", "url"),
    "JWT_SECRET_KEY": ("auth", "secret_key"),
    "RESEND_API_KEY": ("email", "api_key"),
    "MONGODB_DATA_API_KEY": ("mirror", "api_key"),
    "MONGODB_DATA_API_URL": ("mirror", "api_url"),
}


def load_config(
    config_path: Optional[str] = None,
) -> ServiceConfig:
    """Load configuration from YAML file with env overrides.

    Priority: dedicated env vars > CONFIG__* env vars > YAML file > defaults
    """
    config_dict = {}

    # 1. Load YAML if exists
    if config_path is None:
        config_path = os.getenv("SKILLSYNC_CONFIG", "config/skillsync.yml")
    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            config_dict = yaml.safe_load(f) or {}

    # 2. Apply env overrides
    config_dict = _apply_env_overrides(config_dict)

    # 3. Secrets from dedicated env vars
    for env_var, (section, key) in _SECRET_ENV_VARS.items():
        value = os.getenv(env_var)
        if value:
            config_dict.setdefault(section, {})[key] = value

    # Common Heroku/Cloud SQL pattern: postgres:// → postgresql://
    url = config_dict.get("database", {}).get("url", "")
    if url.startswith("postgres://"):
        config_dict["database"]["url"] = url.replace("postgres://", "postgresql://", 1)

    return ServiceConfig(**config_dict)


# Singleton for the service
_config: Optional[ServiceConfig] = None


def get_config() -> ServiceConfig:
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config(config_path: Optional[str] = None) -> ServiceConfig:
    global _config
    _config = load_config(config_path)
    return _config
