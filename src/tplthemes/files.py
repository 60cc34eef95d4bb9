"""File lookup across ordered search roots.

Template sources live under one or more roots (application, vendor, ...).
A relative path is looked up in each root in order:

    roots:
      - ./templates          # checked first
      - ./vendor/templates   # fallback

`find_file` returns the first hit, `find_directories` returns every hit so a
namespace can be listed across all roots.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from tplthemes.exceptions import InvalidPathError

log = logging.getLogger(__name__)

# Extension of template resources, without the dot
EXTENSION = "tpl"


@dataclass(frozen=True)
class TemplateFile:
    """A file found by a lookup.

    `path` is the root-relative posix path, `root` the search root it was
    found in.
    """

    root: Path
    path: str

    @property
    def full_path(self) -> Path:
        return self.root / self.path

    @property
    def name(self) -> str:
        return PurePosixPath(self.path).name

    @property
    def extension(self) -> str:
        """Extension without the leading dot (last suffix only)."""
        return PurePosixPath(self.path).suffix.lstrip(".")

    def is_directory(self) -> bool:
        return self.full_path.is_dir()

    def absolute_path(self) -> str:
        return str(self.full_path.resolve())

    def modification_time(self) -> float:
        return self.full_path.stat().st_mtime

    def read(self) -> str:
        return self.full_path.read_text(encoding="utf-8")


@dataclass(frozen=True)
class TemplateDirectory:
    """A directory found by a lookup."""

    root: Path
    path: str

    @property
    def full_path(self) -> Path:
        return self.root / self.path

    def list_entries(self) -> list[TemplateFile]:
        """Direct children, sorted by name."""
        entries = []
        for child in sorted(self.full_path.iterdir()):
            relative = PurePosixPath(self.path) / child.name if self.path else PurePosixPath(child.name)
            entries.append(TemplateFile(root=self.root, path=str(relative)))
        return entries


class FileLookup(ABC):
    """Base class for template file lookups"""

    @abstractmethod
    def find_file(self, relative_path: str) -> TemplateFile | None:
        pass

    @abstractmethod
    def find_directories(self, relative_path: str) -> list[TemplateDirectory]:
        pass


def normalize_relative(relative_path: str) -> str:
    """Normalize a lookup path to a clean root-relative posix path.

    Raises:
        InvalidPathError: If the path is absolute or climbs out of the root.
    """
    pure = PurePosixPath(relative_path)
    if pure.is_absolute():
        raise InvalidPathError(relative_path, "lookup paths must be relative")
    parts = [part for part in pure.parts if part not in ("", ".")]
    if ".." in parts:
        raise InvalidPathError(relative_path, "lookup paths may not contain '..'")
    return "/".join(parts)


class FileSystemLookup(FileLookup):
    """Looks up files in an ordered list of filesystem roots."""

    def __init__(self, roots: list[Path] | list[str]):
        self.roots = [Path(root) for root in roots]

    def find_file(self, relative_path: str) -> TemplateFile | None:
        path = normalize_relative(relative_path)
        for root in self.roots:
            candidate = root / path
            if candidate.is_file():
                log.debug(f"Found {path} in {root}")
                return TemplateFile(root=root, path=path)
        log.debug(f"{path} not found in {len(self.roots)} root(s)")
        return None

    def find_directories(self, relative_path: str) -> list[TemplateDirectory]:
        path = normalize_relative(relative_path)
        directories = [
            TemplateDirectory(root=root, path=path)
            for root in self.roots
            if (root / path).is_dir()
        ]
        log.debug(f"Directory {path or '.'} found in {len(directories)} root(s)")
        return directories
