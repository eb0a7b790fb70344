"""Configuration management for TimeCraft."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from .errors import ConfigError

logger = logging.getLogger(__name__)

TIMECRAFT_HOME = Path(os.environ.get("TIMECRAFT_HOME", Path.home() / "timecraft"))
CONFIG_FILE = TIMECRAFT_HOME / "config" / "timecraft.conf"
DATA_DIR = TIMECRAFT_HOME / "data"

_INT_KEYS = {
    "work_start_hour",
    "work_end_hour",
    "context_refresh_seconds",
    "days_to_include",
    "refresh_interval_minutes",
}


@dataclass
class Config:
    """TimeCraft configuration."""

    todoist_api_token: str = ""
    microsoft_tenant_id: str = ""
    microsoft_client_id: str = ""
    microsoft_client_secret: str = ""
    ms_user_email: str = ""
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    openai_system_prompt: str = "You are an experienced project manager who sharpens task titles."
    openai_task_prompt: str = "Suggest clearer, action-oriented titles for the following task."
    timezone: str = "Europe/Berlin"
    work_start_hour: int = 9
    work_end_hour: int = 17
    context_refresh_seconds: int = 300
    days_to_include: int = 7
    refresh_interval_minutes: int = 5
    data_dir: str = ""
    # Telegram bot settings
    telegram_bot_token: str = ""
    telegram_allowed_users: list[int] = field(default_factory=list)
    telegram_refresh_time: str = "07:30"

    @property
    def data_path(self) -> Path:
        """Directory holding the suggestion cache and optimized-task files."""
        if self.data_dir:
            return Path(self.data_dir).expanduser()
        return DATA_DIR

    def validate(self) -> None:
        """Check the working-hours window. Raises ConfigError."""
        for name in ("work_start_hour", "work_end_hour"):
            value = getattr(self, name)
            if not isinstance(value, int) or not 0 <= value <= 23:
                raise ConfigError(f"{name.upper()} must be an hour between 0 and 23, got {value!r}")
        if self.work_start_hour >= self.work_end_hour:
            raise ConfigError(
                f"Invalid work hours: start={self.work_start_hour}, end={self.work_end_hour}"
            )
        if self.context_refresh_seconds < 0:
            raise ConfigError("CONTEXT_REFRESH_SECONDS must not be negative")
        if self.days_to_include < 1:
            raise ConfigError("DAYS_TO_INCLUDE must be at least 1")

    def require(self, *keys: str) -> None:
        """Raise ConfigError naming every key in `keys` that is empty."""
        missing = [key.upper() for key in keys if not getattr(self, key)]
        if missing:
            raise ConfigError(f"Missing configuration: {', '.join(missing)}")


def _strip_value(value: str) -> str:
    """Handle quoted values with inline comments: "value" # comment."""
    if value.startswith('"') or value.startswith("'"):
        quote = value[0]
        end_quote = value.find(quote, 1)
        return value[1:end_quote] if end_quote != -1 else value[1:]
    # Unquoted: strip inline comments
    if "#" in value:
        value = value.split("#")[0].strip()
    return value


def _apply(config: Config, key: str, value: str) -> None:
    if key in _INT_KEYS:
        try:
            setattr(config, key, int(value))
        except ValueError:
            raise ConfigError(f"{key.upper()} must be an integer, got {value!r}")
        return

    match key:
        case "telegram_allowed_users":
            try:
                config.telegram_allowed_users = [int(u.strip()) for u in value.split(",") if u.strip()]
            except ValueError:
                raise ConfigError(f"TELEGRAM_ALLOWED_USERS must be numeric ids, got {value!r}")
        case _ if hasattr(config, key) and key != "data_path":
            setattr(config, key, value)
        case _:
            logger.warning(f"Ignoring unknown config key: {key}")


def load_config(path: Path | None = None, environ: dict | None = None) -> Config:
    """Load configuration from timecraft.conf, then environment overrides.

    Environment variables use the upper-case key name (e.g. TODOIST_API_TOKEN).
    """
    config = Config()
    path = path or CONFIG_FILE
    environ = os.environ if environ is None else environ

    if path.exists():
        for line in path.read_text().splitlines():
            line = line.strip()
            if not line or line.startswith("#"):
                continue

            if "=" not in line:
                continue

            key, _, value = line.partition("=")
            _apply(config, key.strip().lower(), _strip_value(value.strip()))

    for name in Config.__dataclass_fields__:
        env_value = environ.get(name.upper())
        if env_value:
            _apply(config, name, env_value)

    return config
