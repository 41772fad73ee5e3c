"""Pydantic settings loaded from .env, with conf.json overlay."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict
from pydantic_settings import BaseSettings

BASE_DIR = Path(__file__).resolve().parent

# ---------------------------------------------------------------------------
# conf.json: runtime config kept in the data directory (separate from .env)
# ---------------------------------------------------------------------------


def get_data_dir() -> Path:
    """Resolve the data directory. DRONE_STUDIO_DIR env var or ~/.config/drone-studio."""
    d = os.environ.get("DRONE_STUDIO_DIR", "")
    return Path(d).expanduser() if d else Path.home() / ".config" / "drone-studio"


class StudioConfig(BaseModel):
    database_url: str = ""
    log_level: str = ""
    log_file: str = ""
    default_language: str = ""
    cors_allow_all_origins: bool | None = None  # None = use Settings default
    stream_delay_min_ms: int | None = None
    stream_delay_max_ms: int | None = None
    stream_max_seconds: float | None = None


_logger = logging.getLogger(__name__)


def load_conf() -> StudioConfig:
    """Load conf.json from the data directory."""
    conf_path = get_data_dir() / "conf.json"
    if conf_path.exists():
        try:
            return StudioConfig.model_validate_json(conf_path.read_text())
        except Exception:
            _logger.warning("Failed to parse %s, using defaults", conf_path, exc_info=True)
    return StudioConfig()


def save_conf(config: StudioConfig) -> None:
    """Save conf.json to the data directory."""
    data_dir = get_data_dir()
    data_dir.mkdir(parents=True, exist_ok=True)
    (data_dir / "conf.json").write_text(config.model_dump_json(indent=2))


def _pick(value, fallback):
    return value if value is not None else fallback


# ---------------------------------------------------------------------------
# Bootstrap: load .env, load conf.json
# ---------------------------------------------------------------------------

_env_file = BASE_DIR.parent / ".env"
load_dotenv(_env_file)
_conf = load_conf()

# ---------------------------------------------------------------------------
# Settings (pydantic-settings): .env / env vars override conf.json defaults
# ---------------------------------------------------------------------------


class Settings(BaseSettings):
    DEBUG: bool = False

    DATABASE_URL: str = _conf.database_url or f"sqlite:///{BASE_DIR.parent / 'drone_studio.sqlite3'}"

    CORS_ALLOW_ALL_ORIGINS: bool = _pick(_conf.cors_allow_all_origins, True)
    ALLOWED_ORIGINS: str = ""  # comma-separated, used when CORS_ALLOW_ALL_ORIGINS is off

    LOG_LEVEL: str = _conf.log_level or "INFO"
    LOG_FILE: str = _conf.log_file or ""
    LOG_MAX_BYTES: int = 10_485_760
    LOG_BACKUP_COUNT: int = 5

    DEFAULT_LANGUAGE: str = _conf.default_language or "en"

    # Pacing between streamed snapshots, in milliseconds (0/0 disables)
    STREAM_DELAY_MIN_MS: int = _pick(_conf.stream_delay_min_ms, 50)
    STREAM_DELAY_MAX_MS: int = _pick(_conf.stream_delay_max_ms, 150)
    STREAM_MAX_SECONDS: float = _pick(_conf.stream_max_seconds, 60.0)

    CLIENT_BASE_URL: str = "http://localhost:8000"
    CLIENT_TIMEOUT_SECONDS: float = 120.0

    model_config = ConfigDict(
        env_file=str(BASE_DIR.parent / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def allowed_origins(self) -> list[str]:
        return [o.strip() for o in self.ALLOWED_ORIGINS.split(",") if o.strip()]

    @property
    def stream_delay_ms(self) -> tuple[int, int]:
        low = max(0, self.STREAM_DELAY_MIN_MS)
        return low, max(low, self.STREAM_DELAY_MAX_MS)


settings = Settings()
