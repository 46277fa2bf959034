"""Structured JSON renderer."""

from __future__ import annotations

import json
from typing import Any

from .common import Options, ViewLevel, prepare_graph
from .graph import ArchGraph, Edge, EdgeType, Node, NodeType


def _node_dict(node: Node) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": node.id,
        "name": node.name,
        "type": NodeType(node.type).value,
    }
    if node.language:
        data["language"] = node.language
    if node.path:
        data["path"] = node.path
    return data


def _edge_dict(edge: Edge) -> dict[str, Any]:
    data: dict[str, Any] = {
        "source": edge.source,
        "target": edge.target,
        "type": EdgeType(edge.type).value,
    }
    if edge.label:
        data["label"] = edge.label
    return data


def render(graph: ArchGraph, opts: Options | None = None) -> str:
    """Render the visible graph as indented JSON."""
    opts = opts or Options()
    vg = prepare_graph(graph, opts)
    document = {
        "title": opts.title or "Architecture",
        "view_level": ViewLevel(opts.view_level).value,
        "root_path": graph.root_path,
        "topology": graph.topology,
        "nodes": [_node_dict(n) for n in vg.nodes],
        "edges": [_edge_dict(e) for e in vg.edges],
    }
    return json.dumps(document, indent=2, ensure_ascii=False)