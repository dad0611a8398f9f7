"""
Application Settings Management

Central configuration for the workspace data engine: storage tiers,
logging, the copy engine and the grouping/remote HTTP collaborators.

IMPORTANT:
- Secrets (Redis password, API tokens) belong in environment variables,
  never in code.
- For local development create `.env.local` in the project root.
"""

from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# ==================== Defaults ====================
# Anonymous/local-only sessions store their groups under this user id
LOCAL_USER_ID = "local"

# mindful/settings.py -> mindful/ -> project root
PROJECT_ROOT = Path(__file__).resolve().parent.parent

ENV_FILE = PROJECT_ROOT / ".env.local"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # ==================== Environment ====================
    # "local-dev" | "test" | "production"
    environment: str = "local-dev"
    debug: bool = False

    # ==================== Redis ====================
    # "in_memory": FakeRedis, no external service
    # "redis": a real Redis instance
    redis_type: str = "in_memory"

    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_index: int = 0
    redis_password: str | None = None
    redis_socket_timeout: int = 5
    redis_socket_connect_timeout: int = 5

    # Root of every key this application writes
    redis_key_root: str = "mindful"

    # Session tier entries expire after this many seconds of inactivity
    session_ttl_seconds: int = 12 * 60 * 60

    # ==================== Logging ====================
    logs_subdir: str = "logs"
    log_to_file: bool = False
    log_max_bytes: int = 20 * 1024 * 1024  # 20MB
    log_backup_count: int = 5

    # ==================== Copy / Move ====================
    copy_chunk_size: int = 100

    # ==================== Grouping API ====================
    grouping_api_base_url: str = "https://api.mindfulbookmarks.com"
    grouping_min_items: int = 6
    grouping_max_items: int = 100
    grouping_timeout: float = 60
    grouping_max_name_chars: int = 200

    # ==================== Remote storage ====================
    remote_api_base_url: str = ""
    remote_timeout: float = 30

    # ==================== Identity ====================
    local_user_id: str = LOCAL_USER_ID

    model_config = SettingsConfigDict(
        env_prefix="MINDFUL_",
        env_file=str(ENV_FILE),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @model_validator(mode="after")
    def validate_grouping_bounds(self) -> "Settings":
        """Reject a grouping window where the minimum exceeds the maximum."""
        if self.grouping_min_items > self.grouping_max_items:
            raise ValueError(
                f"grouping_min_items ({self.grouping_min_items}) must not exceed "
                f"grouping_max_items ({self.grouping_max_items})"
            )
        if self.copy_chunk_size < 1:
            raise ValueError("copy_chunk_size must be at least 1")
        return self

    # ==================== Paths ====================

    @classmethod
    def get_project_root(cls) -> Path:
        """Absolute path of the project root."""
        return PROJECT_ROOT

    def get_logs_root(self) -> Path:
        """
        Directory for rotating log files.

        - local-dev: {project_root}/logs/
        - otherwise: ~/.mindful/logs/
        """
        if self.is_local_dev():
            return self.get_project_root() / self.logs_subdir
        return Path.home() / ".mindful" / self.logs_subdir

    def is_local_dev(self) -> bool:
        """Check if running in local development mode."""
        return self.environment == "local-dev"

    def is_remote_storage_configured(self) -> bool:
        """True when a remote bookmarks API endpoint is set."""
        return bool(self.remote_api_base_url)


settings = Settings()
