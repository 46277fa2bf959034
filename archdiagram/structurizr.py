"""Structurizr DSL renderer."""

from __future__ import annotations

from .common import Options, edge_label, prepare_graph, sanitize_id
from .graph import ArchGraph, Node, NodeType

_TAGS = {
    NodeType.DATABASE: "Database",
    NodeType.QUEUE: "Queue",
    NodeType.CACHE: "Cache",
}

_VIEWS = (
    "    views {\n"
    "        container system {\n"
    "            include *\n"
    "            autoLayout\n"
    "        }\n"
    "    }\n"
)


def _container(node: Node) -> str:
    head = f'            {sanitize_id(node.id)} = container "{node.name}" "" "{node.language}"'
    tag = _TAGS.get(node.type)
    if tag is None:
        return head + "\n"
    return f'{head} {{\n                tags "{tag}"\n            }}\n'


def render(graph: ArchGraph, opts: Options | None = None) -> str:
    """Render the graph as a Structurizr workspace."""
    opts = opts or Options()
    title = opts.title or "Architecture"

    vg = prepare_graph(graph, opts)
    vg.transitive_reduce()

    out = ["workspace {\n", "    model {\n"]

    externals = [n for n in vg.nodes if n.type == NodeType.EXTERNAL_API]
    internals = [n for n in vg.nodes if n.type != NodeType.EXTERNAL_API]

    for n in externals:
        out.append(f'        {sanitize_id(n.id)} = softwareSystem "{n.name}" {{\n')
        out.append('            tags "External"\n')
        out.append("        }\n")

    out.append(f'        system = softwareSystem "{title}" {{\n')
    out.extend(_container(n) for n in internals)
    out.append("        }\n")

    for e in vg.edges:
        label = edge_label(e, vg.names.get(e.target, ""))
        line = f"        {sanitize_id(e.source)} -> {sanitize_id(e.target)}"
        out.append(f'{line} "{label}"\n' if label else f"{line}\n")

    out.append("    }\n")
    out.append(_VIEWS)
    out.append("}\n")
    return "".join(out)