"""Shared fixtures for the whereused test-suite."""
from pathlib import Path
from typing import Dict

import pytest


FIXTURE_PROJECT = Path(__file__).parent / 'fixtures' / 'sfdx_project'


class RecordingTrace:
    """Trace sink that keeps every message for assertions."""

    def __init__(self):
        self.infos = []
        self.warnings = []

    def info(self, message: str) -> None:
        self.infos.append(message)

    def warn(self, message: str) -> None:
        self.warnings.append(message)


@pytest.fixture
def trace():
    return RecordingTrace()


@pytest.fixture
def fixture_project() -> Path:
    """SFDX-shaped project checked into tests/fixtures."""
    return FIXTURE_PROJECT


@pytest.fixture
def make_repo(tmp_path):
    """Build a throwaway project from a {relative_path: content} mapping."""

    def _make(files: Dict[str, str]) -> Path:
        for relative, content in files.items():
            path = tmp_path / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding='utf-8')
        return tmp_path

    return _make
