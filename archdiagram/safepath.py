"""Validation of user-supplied filesystem paths for scanning and writing."""

from __future__ import annotations

import os

# Directories that must never be scanned or written to.
SENSITIVE_ROOTS = ("/etc", "/proc", "/sys", "/dev")

# Home-directory locations that must never be scanned.
SENSITIVE_DOT_DIRS = (".ssh", ".gnupg", ".aws", ".config/gcloud")


class UnsafePathError(ValueError):
    """A path was rejected as missing, malformed or unsafe."""


def _is_within(path: str, root: str, sep: str = "/") -> bool:
    return path == root or path.startswith(root + sep)


def _home_dir() -> str:
    home = os.path.expanduser("~")
    return "" if home == "~" else home


def validate_scan_path(path: str | os.PathLike[str]) -> str:
    """Check that ``path`` is an existing, non-sensitive directory.

    Returns the absolute path. Raises UnsafePathError otherwise.
    """
    path = os.fspath(path)
    if not path:
        raise UnsafePathError("path is required")

    abs_path = os.path.abspath(path)
    try:
        resolved = os.path.realpath(abs_path, strict=True)
    except OSError:
        resolved = abs_path

    candidates = (abs_path, resolved)
    for candidate in candidates:
        for root in SENSITIVE_ROOTS:
            if _is_within(candidate, root):
                raise UnsafePathError(f"scanning {root} is not allowed")

    home = _home_dir()
    if home:
        for candidate in candidates:
            for dot_dir in SENSITIVE_DOT_DIRS:
                sensitive = os.path.join(home, dot_dir)
                if _is_within(candidate, sensitive):
                    raise UnsafePathError(f"scanning {sensitive} is not allowed")

    if not os.path.exists(abs_path):
        raise UnsafePathError(f"path does not exist: {abs_path}")
    if not os.path.isdir(abs_path):
        raise UnsafePathError(f"path is not a directory: {abs_path}")
    return abs_path


def _resolve_deepest_ancestor(path: str) -> str:
    """Resolve symlinks in the deepest existing ancestor, keeping the rest as is."""
    current = path
    suffix: list[str] = []
    while True:
        if os.path.lexists(current):
            resolved = os.path.realpath(current, strict=True)
            return os.path.join(resolved, *reversed(suffix)) if suffix else resolved
        parent = os.path.dirname(current)
        if parent == current:
            # Nothing exists up to the filesystem root; take the path as canonical.
            return path
        suffix.append(os.path.basename(current))
        current = parent


def _check_contained(file_path: str, base: str) -> None:
    try:
        rel = os.path.relpath(file_path, base)
    except ValueError:
        raise UnsafePathError(
            f"file path {file_path} is outside allowed directory {base}"
        ) from None
    if rel == ".":
        raise UnsafePathError(f"file path equals base directory {base}")
    if rel.startswith(".."):
        raise UnsafePathError(f"file path {file_path} is outside allowed directory {base}")


def validate_output_path(
    file_path: str | os.PathLike[str], base_dir: str | os.PathLike[str]
) -> str:
    """Check that ``file_path`` resolves to a location strictly inside ``base_dir``.

    The file need not exist, but ``base_dir`` must. Symlinks in ``base_dir``
    and in the deepest existing ancestor of ``file_path`` are resolved, so a
    link inside the base cannot redirect the write elsewhere. Returns the
    resolved file path. Raises UnsafePathError otherwise.
    """
    file_path = os.fspath(file_path)
    if not file_path:
        raise UnsafePathError("file path is required")

    abs_base = os.path.normpath(os.path.abspath(os.fspath(base_dir)))
    abs_file = os.path.normpath(os.path.abspath(file_path))

    try:
        resolved_base = os.path.realpath(abs_base, strict=True)
    except OSError as exc:
        raise UnsafePathError(f"resolving base directory symlinks: {exc}") from exc

    try:
        resolved_file = _resolve_deepest_ancestor(abs_file)
    except OSError as exc:
        raise UnsafePathError(f"resolving file path symlinks: {exc}") from exc

    _check_contained(resolved_file, resolved_base)

    for root in SENSITIVE_ROOTS:
        if _is_within(resolved_file, root, os.sep):
            raise UnsafePathError(f"writing to {root} is not allowed")

    return resolved_file