"""Shared fixtures for tplthemes tests."""

from pathlib import Path

import pytest

from tplthemes.files import FileSystemLookup, TemplateDirectory, TemplateFile
from tplthemes.resolver import ThemeResourceResolver


class RecordingLookup(FileSystemLookup):
    """FileSystemLookup that records every path it was asked for."""

    def __init__(self, roots):
        super().__init__(roots)
        self.file_requests: list[str] = []
        self.directory_requests: list[str] = []

    def find_file(self, relative_path: str) -> TemplateFile | None:
        self.file_requests.append(relative_path)
        return super().find_file(relative_path)

    def find_directories(self, relative_path: str) -> list[TemplateDirectory]:
        self.directory_requests.append(relative_path)
        return super().find_directories(relative_path)


def write_files(root: Path, files: dict[str, str]) -> Path:
    """Create files below root from a path -> content mapping."""
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
    return root


@pytest.fixture
def templates_dir(tmp_path):
    root = tmp_path / "templates"
    root.mkdir()
    return root


@pytest.fixture
def lookup(templates_dir):
    return RecordingLookup([templates_dir])


@pytest.fixture
def resolver(lookup):
    return ThemeResourceResolver(lookup)
