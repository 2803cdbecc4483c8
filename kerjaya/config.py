"""Configuration module for the Kerjaya backend."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

DEFAULT_SESSIONS_FILE = Path(__file__).parent.parent / "data" / "sessions.json"


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass
class TelegramConfig:
    """Telegram application credentials and connection policy."""
    api_id: int = field(default_factory=lambda: int(os.getenv("TELEGRAM_API_ID", "0")))
    api_hash: str = field(default_factory=lambda: os.getenv("TELEGRAM_API_HASH", ""))

    # Login calls retry the initial connection more eagerly than profile lookups
    login_retries: int = field(default_factory=lambda: int(os.getenv("TELEGRAM_LOGIN_RETRIES", "5")))
    profile_retries: int = field(default_factory=lambda: int(os.getenv("TELEGRAM_PROFILE_RETRIES", "1")))
    timeout_seconds: float = field(default_factory=lambda: float(os.getenv("TELEGRAM_TIMEOUT_SECONDS", "30")))

    def is_configured(self) -> bool:
        """Check if the Telegram API credentials are set."""
        return self.api_id > 0 and bool(self.api_hash)


@dataclass
class AuthConfig:
    """Login challenge and session store settings."""
    challenge_ttl_seconds: float = field(default_factory=lambda: float(os.getenv("CHALLENGE_TTL_SECONDS", "300")))
    challenge_sweep_seconds: int = field(default_factory=lambda: int(os.getenv("CHALLENGE_SWEEP_SECONDS", "60")))
    sessions_file: Path = field(default_factory=lambda: Path(os.getenv("SESSIONS_FILE", str(DEFAULT_SESSIONS_FILE))))
    strict_store: bool = field(default_factory=lambda: _env_bool("SESSION_STORE_STRICT"))
    revoke_upstream_on_logout: bool = field(default_factory=lambda: _env_bool("REVOKE_UPSTREAM_ON_LOGOUT"))


@dataclass
class ServerConfig:
    """HTTP server settings."""
    host: str = field(default_factory=lambda: os.getenv("HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: int(os.getenv("PORT", "3000")))
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())


@dataclass
class Config:
    """Main configuration container."""
    telegram: TelegramConfig = field(default_factory=TelegramConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)
    server: ServerConfig = field(default_factory=ServerConfig)


def load_config() -> Config:
    """Load configuration from environment variables."""
    return Config()
