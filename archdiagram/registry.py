"""Persistent registry of repositories addressed by alias."""

from __future__ import annotations

import json
import os
import re
import tempfile
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

SERVER_NAME = "ridge"
REGISTRY_FILE = "registry.json"
STATE_SUBDIR = "state"
MAX_ALIAS_LEN = 64

# Must start alphanumeric; no slashes or leading dots, so state paths cannot
# escape the state directory.
_ALIAS_PATTERN = re.compile(r"[A-Za-z0-9][A-Za-z0-9_.-]*")
_FRACTION = re.compile(r"\.(\d+)")
_ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)


class RegistryError(Exception):
    """A registry operation failed."""


def validate_alias(alias: str) -> None:
    """Raise RegistryError if the alias is empty, too long or unsafe."""
    if not alias:
        raise RegistryError("alias is required")
    if len(alias.encode("utf-8")) > MAX_ALIAS_LEN:
        raise RegistryError(f"alias too long (max {MAX_ALIAS_LEN} chars)")
    if not _ALIAS_PATTERN.fullmatch(alias):
        raise RegistryError(
            "alias contains forbidden characters "
            "(allowed: alphanumeric, _, -, .; must start with alphanumeric)"
        )


def default_state_dir() -> Path:
    """The directory that holds the registry and per-repo scan state."""
    return Path.home() / ".mcp-context" / SERVER_NAME


def _format_time(value: datetime) -> str:
    return value.isoformat().replace("+00:00", "Z")


def _parse_time(text: str) -> datetime:
    text = text.replace("Z", "+00:00").replace("z", "+00:00")
    text = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    value = datetime.fromisoformat(text)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


@dataclass
class Repo:
    """A registered repository and its last scan metadata."""

    path: str
    added_at: datetime
    last_scan: datetime | None = None
    node_count: int = 0
    edge_count: int = 0
    topology: str = ""

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"path": self.path, "added_at": _format_time(self.added_at)}
        if self.last_scan is not None:
            data["last_scan"] = _format_time(self.last_scan)
        if self.node_count:
            data["node_count"] = self.node_count
        if self.edge_count:
            data["edge_count"] = self.edge_count
        if self.topology:
            data["topology"] = self.topology
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Repo:
        last_scan = data.get("last_scan")
        parsed_scan = _parse_time(last_scan) if last_scan else None
        if parsed_scan == _ZERO_TIME:
            parsed_scan = None
        added_at = data.get("added_at")
        return cls(
            path=data.get("path", ""),
            added_at=_parse_time(added_at) if added_at else _ZERO_TIME,
            last_scan=parsed_scan,
            node_count=int(data.get("node_count", 0)),
            edge_count=int(data.get("edge_count", 0)),
            topology=data.get("topology", ""),
        )


@dataclass
class RepoEntry:
    """A repo with its alias, flagged stale when its path no longer exists."""

    alias: str
    repo: Repo
    stale: bool = False


@dataclass
class Registry:
    """The set of registered repos, stored under ``directory``."""

    directory: Path
    repos: dict[str, Repo] = field(default_factory=dict)
    version: str = "1"

    def __post_init__(self) -> None:
        self.directory = Path(self.directory)

    def save(self) -> None:
        """Write the registry file atomically."""
        self.directory.mkdir(parents=True, exist_ok=True)
        document = {
            "version": self.version,
            "repos": {alias: repo.to_dict() for alias, repo in self.repos.items()},
        }
        target = self.directory / REGISTRY_FILE
        fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=".registry-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(document, handle, indent=2)
            os.replace(tmp_name, target)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def add(self, alias: str, path: str) -> None:
        """Register ``path`` under ``alias``; the alias must be valid and free."""
        validate_alias(alias)
        existing = self.repos.get(alias)
        if existing is not None:
            raise RegistryError(f"alias {alias!r} already registered (path: {existing.path})")
        self.repos[alias] = Repo(path=path, added_at=datetime.now(timezone.utc))

    def remove(self, alias: str) -> None:
        """Unregister ``alias`` and delete its state file if present."""
        if alias not in self.repos:
            raise RegistryError(f"alias {alias!r} not found in registry")
        del self.repos[alias]
        try:
            self.state_path(alias).unlink(missing_ok=True)
        except OSError:
            pass

    def get(self, alias: str) -> Repo:
        """The repo registered under ``alias``."""
        try:
            return self.repos[alias]
        except KeyError:
            raise RegistryError(f"alias {alias!r} not found in registry") from None

    def entries(self) -> list[RepoEntry]:
        """All registered repos, each flagged stale if its path is gone."""
        return [
            RepoEntry(alias=alias, repo=repo, stale=not os.path.exists(repo.path))
            for alias, repo in self.repos.items()
        ]

    def update_scan_info(self, alias: str, node_count: int, edge_count: int, topology: str) -> None:
        """Record the results of a scan; unknown aliases are ignored."""
        repo = self.repos.get(alias)
        if repo is None:
            return
        repo.last_scan = datetime.now(timezone.utc)
        repo.node_count = node_count
        repo.edge_count = edge_count
        repo.topology = topology

    def state_path(self, alias: str) -> Path:
        """Path of the incremental scan state file for ``alias``."""
        return self.directory / STATE_SUBDIR / f"{alias}.json"


def load(directory: str | os.PathLike[str] | None = None) -> Registry:
    """Read the registry from ``directory``; a missing file yields an empty one.

    Entries whose aliases fail validation are dropped.
    """
    state_dir = Path(directory) if directory is not None else default_state_dir()
    path = state_dir / REGISTRY_FILE
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return Registry(directory=state_dir)
    except OSError as exc:
        raise RegistryError(f"loading registry: {exc}") from exc

    try:
        document = json.loads(raw)
        repos_data = document.get("repos") or {}
        repos = {
            alias: Repo.from_dict(data)
            for alias, data in repos_data.items()
            if _alias_ok(alias)
        }
        version = document.get("version", "1")
    except (ValueError, TypeError, AttributeError) as exc:
        raise RegistryError(f"loading registry: {exc}") from exc
    return Registry(directory=state_dir, repos=repos, version=version)


def _alias_ok(alias: str) -> bool:
    try:
        validate_alias(alias)
    except RegistryError:
        return False
    return True