"""Application configuration using pydantic-settings."""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


def get_project_root() -> Path:
    """
    Find the project root directory.
    Works whether running from backend/ or project root.
    """
    cwd = Path.cwd()
    if cwd.name == "backend" and (cwd.parent / "pyproject.toml").exists():
        return cwd.parent
    if (cwd / "backend").exists():
        return cwd
    # Fallback to current directory
    return cwd


def resolve_database_path(db_url: str, project_root: Path) -> str:
    """
    Resolve a relative SQLite URL against the project root.
    Non-SQLite URLs and in-memory databases are returned unchanged.
    """
    if not db_url.startswith("sqlite") or ":memory:" in db_url:
        return db_url

    # Format: sqlite+aiosqlite:///path or sqlite:///path
    prefix_end = db_url.find(":///") + 4
    prefix = db_url[:prefix_end]
    path = db_url[prefix_end:]

    if path.startswith("./") or not path.startswith("/"):
        clean_path = path.removeprefix("./")
        return f"{prefix}{project_root / clean_path}"

    return db_url


_project_root = get_project_root()

# Find the .env file - check project root first, then current directory
_env_file = _project_root / ".env"
if not _env_file.exists():
    _env_file = Path(".env")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=str(_env_file),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # API Keys
    anthropic_api_key: str = ""

    # Remote (LLM-assisted) feedback analysis. The local heuristic always
    # backs it up, so an empty key simply disables this tier.
    remote_analysis_enabled: bool = True
    model_feedback: str = "claude-haiku-4-5"
    feedback_llm_timeout_seconds: float = 30.0
    feedback_llm_max_tokens: int = 2000

    # Transcripts with fewer user turns than this get the default report
    min_user_turns: int = 3

    # Database - feedback reports are persisted at project root ./data/
    database_url: str = f"sqlite+aiosqlite:///{_project_root}/data/ba_training.db"

    def __init__(self, **data):
        super().__init__(**data)
        resolved_db = resolve_database_path(self.database_url, _project_root)
        object.__setattr__(self, "database_url", resolved_db)

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False

    # CORS
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]


settings = Settings()
