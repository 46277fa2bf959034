"""Rendering options and the graph preparation shared by all renderers."""

from __future__ import annotations

import re
from collections import defaultdict, deque
from dataclasses import dataclass, field
from enum import Enum

from .graph import ArchGraph, Edge, Node, NodeType


class Format(str, Enum):
    """Supported output formats."""

    MERMAID = "mermaid"
    PLANTUML = "plantuml"
    C4 = "c4"
    STRUCTURIZR = "structurizr"
    JSON = "json"
    DRAWIO = "drawio"
    EXCALIDRAW = "excalidraw"
    HTML = "html"
    FORCEGRAPH = "forcegraph"


class ViewLevel(str, Enum):
    """Level of detail in rendered output."""

    SYSTEM = "system"
    CONTAINER = "container"
    COMPONENT = "component"


@dataclass
class Theme:
    """Two-colour theme; both colours must be set for it to apply."""

    bg: str = ""
    fg: str = ""


@dataclass
class Options:
    """Rendering behaviour.

    ``prune_threshold`` of 0 disables super-node pruning; ``min_degree`` of 0
    disables low-degree filtering.
    """

    format: Format = Format.MERMAID
    view_level: ViewLevel = ViewLevel.CONTAINER
    title: str = ""
    direction: str = ""
    theme: Theme = field(default_factory=Theme)
    prune_threshold: float = 0.0
    min_degree: int = 0


def default_options() -> Options:
    """Sensible rendering defaults."""
    return Options(format=Format.MERMAID, view_level=ViewLevel.CONTAINER, direction="TB")


@dataclass
class VisibleGraph:
    """Filtered nodes and edges ready for rendering."""

    nodes: list[Node]
    edges: list[Edge]
    ids: set[str]
    names: dict[str, str]
    pruned_nodes: list[str] = field(default_factory=list)

    def transitive_reduce(self) -> None:
        """Drop edges implied by a longer path made of edges of the same type."""
        adjacency: dict[str, dict[str, list[str]]] = defaultdict(lambda: defaultdict(list))
        for e in self.edges:
            adjacency[e.type][e.source].append(e.target)
        self.edges = [
            e for e in self.edges
            if not _transitive_reachable(adjacency[e.type], e.source, e.target)
        ]


def _transitive_reachable(adj: dict[str, list[str]], source: str, target: str) -> bool:
    """True if target is reachable from source through at least one other node."""
    visited = {source}
    queue: deque[str] = deque()
    for neighbor in adj.get(source, ()):
        if neighbor != target and neighbor not in visited:
            visited.add(neighbor)
            queue.append(neighbor)
    while queue:
        current = queue.popleft()
        if current == target:
            return True
        for nxt in adj.get(current, ()):
            if nxt not in visited:
                visited.add(nxt)
                queue.append(nxt)
    return False


_SYSTEM_TYPES = {NodeType.SERVICE, NodeType.EXTERNAL_API}
_CONTAINER_EXCLUDED = {NodeType.PACKAGE, NodeType.ENDPOINT}


def filter_nodes_by_view_level(nodes: list[Node], level: ViewLevel | str) -> list[Node]:
    """Nodes that are shown at the given view level."""
    level = ViewLevel(level)
    if level is ViewLevel.SYSTEM:
        return [n for n in nodes if n.type in _SYSTEM_TYPES]
    if level is ViewLevel.CONTAINER:
        return [n for n in nodes if n.type not in _CONTAINER_EXCLUDED]
    return list(nodes)


def filter_graph(graph: ArchGraph, level: ViewLevel | str) -> VisibleGraph:
    """Visible nodes and the resolved edges whose both ends are visible."""
    nodes = filter_nodes_by_view_level(graph.nodes, level)
    ids = {n.id for n in nodes}
    names = {n.id: n.name for n in nodes}
    edges = [e for e in graph.resolved_edges() if e.source in ids and e.target in ids]
    return VisibleGraph(nodes=nodes, edges=edges, ids=ids, names=names)


def barycenter_order(layer_nodes: list[list[Node]], edges: list[Edge]) -> None:
    """Reorder each layer in place to reduce edge crossings.

    One top-down and one bottom-up barycenter pass.
    """
    if len(layer_nodes) < 2:
        return

    neighbors: dict[str, list[str]] = defaultdict(list)
    for e in edges:
        neighbors[e.source].append(e.target)
        neighbors[e.target].append(e.source)

    position: dict[str, int] = {}

    def rebuild() -> None:
        for layer in layer_nodes:
            for index, node in enumerate(layer):
                position[node.id] = index

    def sort_layer(layer: list[Node]) -> None:
        bary: dict[str, float] = {}
        for node in layer:
            nbrs = neighbors.get(node.id, [])
            if not nbrs:
                bary[node.id] = float(position.get(node.id, 0))
            else:
                bary[node.id] = sum(position.get(nb, 0) for nb in nbrs) / len(nbrs)
        layer.sort(key=lambda n: bary[n.id])

    rebuild()
    for layer in layer_nodes[1:]:
        sort_layer(layer)
        rebuild()
    for layer in reversed(layer_nodes[:-1]):
        sort_layer(layer)
        rebuild()


def edge_label(edge: Edge, target_name: str) -> str:
    """Display label, empty when it only repeats the edge type or target name."""
    label = edge.label
    if not label or label == edge.type.value or label == target_name:
        return ""
    return label


def prune_super_nodes(vg: VisibleGraph, threshold: float) -> list[str]:
    """Remove nodes whose fan-in ratio exceeds ``threshold``; return their names."""
    if threshold <= 0 or not vg.edges:
        return []

    total_sources = len({e.source for e in vg.edges})
    if total_sources == 0:
        return []

    fan_in: dict[str, set[str]] = defaultdict(set)
    for e in vg.edges:
        fan_in[e.target].add(e.source)

    prune_set = {
        node_id for node_id, sources in fan_in.items()
        if len(sources) / total_sources > threshold
    }
    if not prune_set:
        return []

    name_of = {n.id: n.name for n in vg.nodes}
    pruned_names = []
    for node_id in fan_in:
        if node_id in prune_set:
            pruned_names.append(name_of.get(node_id, ""))
            vg.ids.discard(node_id)

    vg.nodes = [n for n in vg.nodes if n.id not in prune_set]
    vg.edges = [e for e in vg.edges if e.source not in prune_set and e.target not in prune_set]
    vg.pruned_nodes = pruned_names
    return pruned_names


def keep_high_degree(vg: VisibleGraph, min_degree: int) -> None:
    """Repeatedly drop nodes whose total degree is below ``min_degree``."""
    if min_degree <= 0 or not vg.nodes:
        return
    while True:
        degree: dict[str, int] = defaultdict(int)
        for e in vg.edges:
            degree[e.source] += 1
            degree[e.target] += 1

        keep = {n.id for n in vg.nodes if degree[n.id] >= min_degree}
        if len(keep) == len(vg.nodes):
            return

        for n in vg.nodes:
            if n.id not in keep:
                vg.ids.discard(n.id)
        vg.nodes = [n for n in vg.nodes if n.id in keep]
        vg.edges = [e for e in vg.edges if e.source in keep and e.target in keep]


def prepare_graph(graph: ArchGraph, opts: Options) -> VisibleGraph:
    """Apply view filtering, super-node pruning and low-degree filtering."""
    vg = filter_graph(graph, opts.view_level)
    prune_super_nodes(vg, opts.prune_threshold)
    keep_high_degree(vg, opts.min_degree)
    return vg


_SEPARATORS = (("/", "__"), (":", "___"), (".", "_"), (" ", "_"), ("-", "_"))
_INVALID_ID_CHAR = re.compile(r"[^A-Za-z0-9_]")


def sanitize_id(node_id: str) -> str:
    """Turn an arbitrary id into one that is valid in every diagram format.

    Separators get distinct replacements so that e.g. ``api/v1`` and
    ``api.v1`` stay distinct.
    """
    for old, new in _SEPARATORS:
        node_id = node_id.replace(old, new)
    return _INVALID_ID_CHAR.sub("_", node_id)