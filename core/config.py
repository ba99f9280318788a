"""
Path: core/config.py
Centralized settings for cloning, scanning and serving. Values come from environment variables with safe defaults.
"""
from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes"}


@dataclass(frozen=True)
class Settings:
    # Remote acquisition
    GIT_HOST: str = field(default_factory=lambda: os.getenv("UNSAFE_GIT_HOST", "https://github.com").rstrip("/"))
    WORK_DIR: Path = field(default_factory=lambda: Path(os.getenv("UNSAFE_WORK_DIR", tempfile.gettempdir())))
    CLONE_DEPTH: int = field(default_factory=lambda: int(os.getenv("UNSAFE_CLONE_DEPTH", "1")))
    CLONE_TIMEOUT: float = field(default_factory=lambda: float(os.getenv("UNSAFE_CLONE_TIMEOUT", "120")))

    # Scanning; MAX_WORKERS=1 means the sequential fold
    MAX_WORKERS: int = field(default_factory=lambda: int(os.getenv("UNSAFE_MAX_WORKERS", "4")))
    INCLUDE_TESTS: bool = field(default_factory=lambda: _env_flag("UNSAFE_INCLUDE_TESTS", "false"))

    # Server
    HOST: str = field(default_factory=lambda: os.getenv("HOST", "127.0.0.1"))
    PORT: int = field(default_factory=lambda: int(os.getenv("PORT", "8000")))
    LOG_LEVEL: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())


def get_settings() -> Settings:
    return Settings()


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
