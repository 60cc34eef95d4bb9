"""Namespace listing across a theme stack."""

from __future__ import annotations

import logging
from typing import Iterable

from tplthemes.files import EXTENSION, FileLookup, normalize_relative

log = logging.getLogger(__name__)


def _join(*parts: str | None) -> str:
    joined = "/".join(part.strip("/") for part in parts if part and part.strip("/"))
    return normalize_relative(joined)


def _strip_prefix(path: str, prefix: str) -> str:
    if prefix and path.startswith(prefix + "/"):
        return path[len(prefix) + 1 :]
    return path


def scan_scope(
    lookup: FileLookup,
    namespace: str,
    scope_root: str,
    extension: str = EXTENSION,
) -> dict[str, str]:
    """Collect the resources of a namespace in one scope.

    Args:
        lookup: File lookup providing the directories.
        namespace: Namespace relative to the scope root (e.g. "pages").
        scope_root: Root of the scope, base path and theme (e.g. "view/dark").
        extension: Resource extension, without the dot.

    Returns:
        Dict of resource name relative to the scope root (e.g. "pages/home")
        to name relative to the namespace directory (e.g. "home").
    """
    scope_root = _join(scope_root)
    directory_path = _join(scope_root, namespace)
    suffix = f".{extension}"
    files: dict[str, str] = {}

    for directory in lookup.find_directories(directory_path):
        for entry in directory.list_entries():
            # extensions may hold dots, e.g. "html.tpl"
            if entry.name == suffix or not entry.name.endswith(suffix) or entry.is_directory():
                continue

            resource = _strip_prefix(entry.path, scope_root)[: -len(suffix)]
            name = _strip_prefix(entry.path, directory_path)[: -len(suffix)]
            # roots earlier in the lookup win
            files.setdefault(resource, name)

    return files


def list_files(
    lookup: FileLookup,
    namespace: str,
    themes: Iterable[str] | None = None,
    base_path: str | None = None,
    extension: str = EXTENSION,
) -> dict[str, str]:
    """List the resources of a namespace, most specific theme first.

    Each theme scope is scanned in stack order, then the unthemed scope. A
    resource already listed by an earlier scope is never overwritten. A
    namespace which exists nowhere gives an empty dict.
    """
    base = _join(base_path)
    scopes = [_join(base, theme) for theme in themes or ()]
    scopes.append(base)

    files: dict[str, str] = {}
    for scope_root in scopes:
        for resource, name in scan_scope(lookup, namespace, scope_root, extension).items():
            files.setdefault(resource, name)

    log.debug(f"Listed {len(files)} resource(s) in namespace {namespace!r}")
    return files
