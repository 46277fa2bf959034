"""Architecture graph model: nodes, edges and import-edge resolution."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import PurePath

IMPORT_PREFIX = "import:"


class NodeType(str, Enum):
    """Kind of architectural element a node represents."""

    SERVICE = "service"
    MODULE = "module"
    PACKAGE = "package"
    DATABASE = "database"
    QUEUE = "queue"
    CACHE = "cache"
    EXTERNAL_API = "external_api"
    ENDPOINT = "endpoint"
    NOTE = "note"


class EdgeType(str, Enum):
    """Kind of relationship an edge represents."""

    DEPENDENCY = "dependency"
    API_CALL = "api_call"
    DATA_FLOW = "data_flow"
    READ_WRITE = "read_write"


@dataclass
class Node:
    """A single element of the architecture."""

    id: str
    name: str
    type: NodeType
    language: str = ""
    path: str = ""


@dataclass
class Edge:
    """A directed relationship from ``source`` to ``target``."""

    source: str
    target: str
    type: EdgeType = EdgeType.DEPENDENCY
    label: str = ""


class ArchGraph:
    """A collection of nodes and edges discovered under ``root_path``."""

    def __init__(self, root_path: str, topology: str = "") -> None:
        self.root_path = root_path
        self.topology = topology
        self._nodes: dict[str, Node] = {}
        self.edges: list[Edge] = []

    @property
    def nodes(self) -> list[Node]:
        """Nodes in insertion order."""
        return list(self._nodes.values())

    def add_node(self, node: Node) -> None:
        """Add a node; a node with the same id replaces the earlier one."""
        self._nodes[node.id] = node

    def add_edge(self, edge: Edge) -> None:
        """Append an edge."""
        self.edges.append(edge)

    def _package_paths(self) -> list[tuple[str, str]]:
        root = PurePath(self.root_path)
        result = []
        for node in self._nodes.values():
            if node.type is not NodeType.PACKAGE or not node.path:
                continue
            try:
                rel = PurePath(node.path).relative_to(root).as_posix()
            except ValueError:
                continue
            if rel and rel != ".":
                result.append((rel, node.id))
        # Longest relative path first so the most specific package wins.
        result.sort(key=lambda item: len(item[0]), reverse=True)
        return result

    def _resolve_import(self, import_path: str, packages: list[tuple[str, str]]) -> str | None:
        for rel, node_id in packages:
            if import_path == rel or import_path.endswith("/" + rel):
                return node_id
        return None

    def resolved_edges(self) -> list[Edge]:
        """Edges with ``import:`` targets mapped onto internal package nodes.

        Imports that match no package are dropped, as are imports that
        resolve to their own source. Duplicate resolved edges collapse to one.
        """
        packages = self._package_paths()
        seen: set[tuple[str, str, EdgeType]] = set()
        result: list[Edge] = []
        for edge in self.edges:
            if not edge.target.startswith(IMPORT_PREFIX):
                result.append(edge)
                continue
            target = self._resolve_import(edge.target[len(IMPORT_PREFIX):], packages)
            if target is None or target == edge.source:
                continue
            key = (edge.source, target, edge.type)
            if key in seen:
                continue
            seen.add(key)
            result.append(Edge(edge.source, target, edge.type, edge.label))
        return result