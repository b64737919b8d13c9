"""Config management for multi-space-jira-mcp."""
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


DEFAULT_SESSION_SECRET = "dev-secret-change-in-production"

# Environment variable -> (config key, default)
ENV_KEYS = {
    "ATLASSIAN_CLIENT_ID": ("client_id", ""),
    "ATLASSIAN_CLIENT_SECRET": ("client_secret", ""),
    "HOST": ("host", "0.0.0.0"),
    "PORT": ("port", "3000"),
    "SESSION_SECRET": ("session_secret", DEFAULT_SESSION_SECRET),
    "SERVER_URL": ("server_url", ""),
    "SESSION_MAX_AGE": ("session_max_age", "86400"),  # 24 hours
    "PENDING_AUTH_MAX_AGE": ("pending_max_age", "600"),  # 10 minutes
    "SWEEP_INTERVAL": ("sweep_interval", "3600"),  # hourly
    "HEARTBEAT_INTERVAL": ("heartbeat_interval", "30"),
    "CORS_ORIGINS": ("cors_origins", "https://claude.ai"),
    "SUPABASE_URL": ("supabase_url", ""),
    "SUPABASE_KEY": ("supabase_key", ""),
    "SERVICE_NAME": ("service_name", "multi-space-jira-mcp"),
}

DEFAULTS = {key: default for key, default in ENV_KEYS.values()}


class Config:
    """Configuration container."""

    def __init__(self, data: dict = None):
        self.data = data or {}

    def _get(self, key: str) -> str:
        return self.data.get(key, DEFAULTS.get(key, ""))

    @property
    def client_id(self) -> str:
        return self._get("client_id")

    @property
    def client_secret(self) -> str:
        return self._get("client_secret")

    @property
    def host(self) -> str:
        return self._get("host")

    @property
    def port(self) -> int:
        return int(self._get("port"))

    @property
    def session_secret(self) -> str:
        return self._get("session_secret")

    @property
    def server_url(self) -> Optional[str]:
        url = self._get("server_url")
        return url.rstrip("/") if url else None

    @property
    def session_max_age(self) -> float:
        return float(self._get("session_max_age"))

    @property
    def pending_max_age(self) -> float:
        return float(self._get("pending_max_age"))

    @property
    def sweep_interval(self) -> float:
        return float(self._get("sweep_interval"))

    @property
    def heartbeat_interval(self) -> float:
        return float(self._get("heartbeat_interval"))

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self._get("cors_origins").split(",") if o.strip()]

    @property
    def supabase_url(self) -> str:
        return self._get("supabase_url")

    @property
    def supabase_key(self) -> str:
        return self._get("supabase_key")

    @property
    def service_name(self) -> str:
        return self._get("service_name")

    def is_oauth_configured(self) -> bool:
        """Check if the Atlassian OAuth client is set up."""
        return bool(self.client_id)

    def has_supabase(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)


def load_config(env_file: Path = None) -> Config:
    """Load config from .env and the process environment."""
    env_file = env_file or Path(".env")
    if env_file.exists():
        load_dotenv(env_file)

    data = {}
    for env_name, (key, _default) in ENV_KEYS.items():
        value = os.getenv(env_name)
        if value is not None and value != "":
            data[key] = value
    return Config(data)
