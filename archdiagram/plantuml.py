"""PlantUML renderer."""

from __future__ import annotations

from .common import Options, edge_label, prepare_graph, sanitize_id
from .graph import ArchGraph, EdgeType, Node, NodeType

_GROUPS = (
    (NodeType.SERVICE, "Services"),
    (NodeType.MODULE, "Modules"),
    (NodeType.PACKAGE, "Packages"),
    (NodeType.DATABASE, "Data Stores"),
    (NodeType.QUEUE, "Message Queues"),
    (NodeType.CACHE, "Caches"),
    (NodeType.EXTERNAL_API, "External APIs"),
    (NodeType.ENDPOINT, "Endpoints"),
)

_KEYWORDS = {
    NodeType.SERVICE: "component",
    NodeType.DATABASE: "database",
    NodeType.QUEUE: "queue",
    NodeType.CACHE: "storage",
    NodeType.EXTERNAL_API: "cloud",
    NodeType.ENDPOINT: "usecase",
}

_ARROWS = {
    EdgeType.DATA_FLOW: "..>",
    EdgeType.READ_WRITE: "<-->",
}


def _node_group(nodes: list[Node], node_type: NodeType, group_label: str) -> list[str]:
    group = [n for n in nodes if n.type == node_type]
    if not group:
        return []
    lines = [f'package "{group_label}" {{\n']
    for n in group:
        keyword = _KEYWORDS.get(n.type, "rectangle")
        lines.append(f'    {keyword} "{n.name}" as {sanitize_id(n.id)}\n')
    lines.append("}\n\n")
    return lines


def render(graph: ArchGraph, opts: Options | None = None) -> str:
    """Render the graph as a PlantUML diagram."""
    opts = opts or Options()
    title = opts.title or "Architecture"

    out = ["@startuml\n", f"title {title}\n"]
    if opts.direction == "LR":
        out.append("left to right direction\n")
    out.append("\n")

    vg = prepare_graph(graph, opts)
    vg.transitive_reduce()

    for node_type, group_label in _GROUPS:
        out.extend(_node_group(vg.nodes, node_type, group_label))

    for e in vg.edges:
        label = edge_label(e, vg.names.get(e.target, ""))
        arrow = _ARROWS.get(e.type, "-->")
        line = f"{sanitize_id(e.source)} {arrow} {sanitize_id(e.target)}"
        out.append(f"{line} : {label}\n" if label else f"{line}\n")

    out.append("\n@enduml\n")
    return "".join(out)