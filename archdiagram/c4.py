"""C4-PlantUML container diagram renderer."""

from __future__ import annotations

from .common import Options, edge_label, prepare_graph, sanitize_id
from .graph import ArchGraph, Node, NodeType

_ELEMENTS = {
    NodeType.DATABASE: ("ContainerDb", "Data store", ""),
    NodeType.QUEUE: ("Container", "Message queue", " <<queue>>"),
    NodeType.CACHE: ("Container", "Cache", " <<cache>>"),
    NodeType.SERVICE: ("Container", "Service", ""),
    NodeType.MODULE: ("Container", "Service", ""),
    NodeType.PACKAGE: ("Component", "Package", ""),
    NodeType.ENDPOINT: ("Component", "Endpoint", ""),
}
_DEFAULT_ELEMENT = ("Container", "", "")


def _element(node: Node) -> str:
    macro, description, stereotype = _ELEMENTS.get(node.type, _DEFAULT_ELEMENT)
    node_id = sanitize_id(node.id)
    return (
        f'    {macro}({node_id}, "{node.name}", "{node.language}", "{description}")'
        f"{stereotype}\n"
    )


def render(graph: ArchGraph, opts: Options | None = None) -> str:
    """Render the graph using C4-PlantUML notation."""
    opts = opts or Options()
    title = opts.title or "Architecture"

    vg = prepare_graph(graph, opts)
    vg.transitive_reduce()

    out = ["@startuml\n", "!include <C4/C4_Container>\n\n", f"title {title}\n\n"]

    externals = [n for n in vg.nodes if n.type == NodeType.EXTERNAL_API]
    internals = [n for n in vg.nodes if n.type != NodeType.EXTERNAL_API]

    for n in externals:
        out.append(f'System_Ext({sanitize_id(n.id)}, "{n.name}")\n')
    if externals:
        out.append("\n")

    if internals:
        out.append('System_Boundary(system, "System") {\n')
        out.extend(_element(n) for n in internals)
        out.append("}\n\n")

    for e in vg.edges:
        label = edge_label(e, vg.names.get(e.target, ""))
        out.append(f'Rel({sanitize_id(e.source)}, {sanitize_id(e.target)}, "{label}")\n')

    out.append("\n@enduml\n")
    return "".join(out)