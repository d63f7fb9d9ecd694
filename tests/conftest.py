"""Shared pytest configuration."""

import shutil
from pathlib import Path

import pytest

from kb_studio.utils.config import reset_settings
from kb_studio.utils.logging_config import reset_logging


@pytest.fixture(scope="session", autouse=True)
def backup_env_file():
    """Backup .env file during test session to prevent pollution."""
    env_file = Path(".env")
    backup_file = Path(".env.test_backup")

    if env_file.exists():
        shutil.copy(env_file, backup_file)
        env_file.unlink()

    yield

    if backup_file.exists():
        shutil.move(backup_file, env_file)


@pytest.fixture(autouse=True)
def base_env(monkeypatch: pytest.MonkeyPatch):
    """Minimal environment for Settings, with fresh settings and logging per test."""
    monkeypatch.setenv("APP_NAME", "kb-studio-test")
    monkeypatch.setenv("ENVIRONMENT", "development")
    monkeypatch.setenv("LLM_RETRY_DELAY", "0.01")
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("CUSTOM_LLM_BASE_URL", raising=False)
    reset_settings()
    reset_logging()
    yield
    reset_settings()
    reset_logging()
