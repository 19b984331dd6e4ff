"""
Pytest configuration and fixtures.
"""

import pytest

from citeguard.models import AccuracyConfig, PathsConfig, SettingsConfig


@pytest.fixture
def settings(tmp_path) -> SettingsConfig:
    """Default settings with every path under tmp_path and no per-citation delay."""
    return SettingsConfig(
        paths=PathsConfig(
            content_dir=str(tmp_path / "content"),
            archive_dir=str(tmp_path / "archive"),
            accuracy_dir=str(tmp_path / "accuracy"),
            db_path=str(tmp_path / "citations.db"),
        ),
        accuracy=AccuracyConfig(delay_ms=0),
    )
