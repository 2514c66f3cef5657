"""Configuration management for whereused.

Settings come from environment variables, optionally seeded from a .env
file in the working directory or the project root.
"""
import os
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

__version__ = "1.2.0"

DEFAULT_WORKER_TIMEOUT = 600.0


class Config:
    """Configuration loader with environment variable support."""

    def __init__(self, env_file: Optional[str | Path] = None):
        """Load .env files and validate numeric settings.

        Args:
            env_file: Explicit .env path; defaults to ./.env then the project root
        """
        if env_file is not None:
            load_dotenv(env_file)
        else:
            load_dotenv(Path.cwd() / ".env")
            load_dotenv(Path(__file__).parent.parent / ".env")

        self._validate()

    def _validate(self):
        """Fail early on malformed numeric settings.

        Raises:
            ValueError: If WHEREUSED_MAX_WORKERS or WHEREUSED_WORKER_TIMEOUT is invalid
        """
        workers = self.max_workers
        if workers is not None and workers < 1:
            raise ValueError("WHEREUSED_MAX_WORKERS must be a positive integer.")
        if self.worker_timeout <= 0:
            raise ValueError("WHEREUSED_WORKER_TIMEOUT must be a positive number of seconds.")

    @property
    def repo_dir(self) -> Optional[str]:
        """Repository to scan when the command line does not name one.

        Returns:
            Path string or None if not configured
        """
        value = os.getenv("WHEREUSED_REPO_DIR", "").strip()
        return value or None

    @property
    def max_workers(self) -> Optional[int]:
        """Thread pool size for per-file matching (None for automatic)."""
        raw = os.getenv("WHEREUSED_MAX_WORKERS", "").strip()
        if not raw:
            return None
        try:
            return int(raw)
        except ValueError:
            raise ValueError(f"WHEREUSED_MAX_WORKERS is not an integer: {raw!r}") from None

    @property
    def worker_timeout(self) -> float:
        """Seconds to wait for the isolated worker before killing it."""
        raw = os.getenv("WHEREUSED_WORKER_TIMEOUT", "").strip()
        if not raw:
            return DEFAULT_WORKER_TIMEOUT
        try:
            return float(raw)
        except ValueError:
            raise ValueError(f"WHEREUSED_WORKER_TIMEOUT is not a number: {raw!r}") from None

    @property
    def ignore_dirs(self) -> List[str]:
        """Extra directory names to skip, from a comma-separated list."""
        raw = os.getenv("WHEREUSED_IGNORE_DIRS", "")
        return [name.strip() for name in raw.split(",") if name.strip()]

    @property
    def output_dir(self) -> Optional[str]:
        """Directory where saved JSON reports go (None for the current directory)."""
        value = os.getenv("WHEREUSED_OUTPUT_DIR", "").strip()
        return value or None


# Singleton instance
_config = None


def get_config() -> Config:
    """Get or create singleton Config instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config
