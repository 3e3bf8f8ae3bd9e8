"""Configuration management for mkvbatch."""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="MKVBATCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Server
    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = False
    log_level: str = "INFO"

    # Output
    destination_dir: Path | None = None
    overwrite_source: bool = False

    # Inspection
    ffprobe_path: str = "ffprobe"
    inspect_batch_size: int = 8

    # Queue
    max_parallel_jobs: int = 12
    abort_on_errors: bool = False

    def ensure_directories(self) -> None:
        """Create the destination directory if one is configured."""
        if self.destination_dir is not None:
            self.destination_dir.mkdir(parents=True, exist_ok=True)


# Global settings instance
settings = Settings()
