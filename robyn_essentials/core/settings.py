"""Unified settings for robyn-essentials."""

import tomllib
from pathlib import Path
from typing import ClassVar, Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


def read_pyproject(pyproject_path: Path) -> dict:
    """Read pyproject.toml into a dict, empty when running from an installed wheel."""
    if not pyproject_path.is_file():
        return {}
    with pyproject_path.open("rb") as file_handle:
        return tomllib.load(file_handle)


def get_version(base_dir: Path) -> str:
    """Get version from git tags or fallback to package metadata."""
    try:
        import git

        repo = git.Repo(base_dir, search_parent_directories=True)
        latest_tag = max(repo.tags, key=lambda t: t.commit.committed_datetime, default=None)
        return str(latest_tag) if latest_tag else "0.0.0"
    except Exception:
        try:
            import importlib.metadata

            return importlib.metadata.version("robyn-essentials")
        except Exception:
            return "0.0.0"


class Settings(BaseSettings):
    """Unified settings for robyn-essentials."""

    DEBUG: bool = True
    ENVIRONMENT: Literal["DEV", "PROD"] = "DEV"
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    # ClassVar to prevent Pydantic from trying to load from env
    BASE_DIR: ClassVar[Path] = Path(__file__).parent.parent.parent
    PROJECT: ClassVar[dict] = read_pyproject(BASE_DIR / "pyproject.toml")
    API_NAME: ClassVar[str] = PROJECT.get("project", {}).get("name", "robyn-essentials")
    API_DESCRIPTION: ClassVar[str] = PROJECT.get("project", {}).get(
        "description", "Request body, form data and CORS helpers for Robyn"
    )
    API_VERSION: ClassVar[str] = get_version(BASE_DIR)

    # Demo server
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8080

    # Uploads: file parts stay in memory up to this size, then spill to disk
    SPOOL_MAX_MEMORY_SIZE: int = 1024 * 1024
    FILE_CHUNK_SIZE: int = 64 * 1024

    # CORS, empty means every origin is accepted
    CORS_ALLOWED_ORIGINS: list[str] = []

    @property
    def api_url(self) -> str:
        return f"http://{self.API_HOST}:{self.API_PORT}"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


settings = Settings()  # type: ignore
