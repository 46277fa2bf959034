"""Mermaid flowchart renderer with optional two-colour theming."""

from __future__ import annotations

import re

from .common import Options, Theme, edge_label, prepare_graph, sanitize_id
from .graph import ArchGraph, Node, NodeType

_GROUPS = (
    (NodeType.SERVICE, "Services"),
    (NodeType.MODULE, "Modules"),
    (NodeType.PACKAGE, "Packages"),
    (NodeType.DATABASE, "Data Stores"),
    (NodeType.QUEUE, "Message Queues"),
    (NodeType.CACHE, "Caches"),
    (NodeType.EXTERNAL_API, "External APIs"),
    (NodeType.ENDPOINT, "Endpoints"),
    (NodeType.NOTE, "Notes"),
)

_SHAPES = {
    NodeType.DATABASE: ("[(", ")]"),
    NodeType.QUEUE: ("[[", "]]"),
    NodeType.CACHE: ("((", "))"),
    NodeType.EXTERNAL_API: (">", "]"),
    NodeType.ENDPOINT: ("{{", "}}"),
    NodeType.NOTE: ("([", "])"),
}
_DEFAULT_SHAPE = ("[", "]")

_LABEL_SPECIALS = set('()[]{}"')
_HEX_DIGITS = re.compile(r"[0-9A-Fa-f]{6}")


def parse_hex(value: str) -> tuple[int, int, int]:
    """Parse ``#RGB`` or ``#RRGGBB`` (the ``#`` is optional) into components.

    Raises ValueError for anything else.
    """
    digits = value[1:] if value.startswith("#") else value
    if len(digits) == 3:
        digits = "".join(ch * 2 for ch in digits)
    if not _HEX_DIGITS.fullmatch(digits):
        raise ValueError(f"invalid hex colour: {value!r}")
    return int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16)


def theme_init(theme: Theme) -> str:
    """Mermaid ``%%{init}%%`` directive derived from the theme's two colours.

    Returns an empty string when either colour is missing or unparseable.
    """
    if not theme.bg or not theme.fg:
        return ""
    try:
        bg = parse_hex(theme.bg)
        fg = parse_hex(theme.fg)
    except ValueError:
        return ""

    def mix(pct: float) -> str:
        r, g, b = (int(b_ + pct * (f_ - b_)) for b_, f_ in zip(bg, fg))
        return f"#{r:02x}{g:02x}{b:02x}"

    variables = (
        ("primaryColor", mix(0.03)),
        ("primaryTextColor", theme.fg),
        ("primaryBorderColor", mix(0.30)),
        ("lineColor", mix(0.30)),
        ("secondaryColor", mix(0.06)),
        ("tertiaryColor", mix(0.02)),
        ("mainBkg", mix(0.03)),
        ("nodeBorder", mix(0.30)),
        ("clusterBkg", mix(0.02)),
        ("titleColor", theme.fg),
    )
    body = ", ".join(f"'{name}': '{colour}'" for name, colour in variables)
    return "%%{init: {'theme': 'base', 'themeVariables': {" + body + "}}}%%\n"


def _label(name: str) -> str:
    """Quote labels containing characters that confuse Mermaid's shape parser."""
    if not _LABEL_SPECIALS.intersection(name):
        return name
    return '"' + name.replace('"', "&quot;") + '"'


def _node_group(nodes: list[Node], node_type: NodeType, group_label: str) -> list[str]:
    group = [n for n in nodes if n.type == node_type]
    if not group:
        return []
    lines = [f"    subgraph {group_label}\n"]
    for n in group:
        open_, close = _SHAPES.get(n.type, _DEFAULT_SHAPE)
        lines.append(f"        {sanitize_id(n.id)}{open_}{_label(n.name)}{close}\n")
    lines.append("    end\n")
    return lines


def render(graph: ArchGraph, opts: Options | None = None) -> str:
    """Render the graph as a Mermaid diagram."""
    opts = opts or Options()
    direction = opts.direction or "TB"
    title = opts.title or "Architecture"

    out = [theme_init(opts.theme), f"---\ntitle: {title}\n---\n", f"graph {direction}\n"]

    vg = prepare_graph(graph, opts)
    vg.transitive_reduce()

    for node_type, group_label in _GROUPS:
        out.extend(_node_group(vg.nodes, node_type, group_label))

    for e in vg.edges:
        label = edge_label(e, vg.names.get(e.target, ""))
        src, dst = sanitize_id(e.source), sanitize_id(e.target)
        if label:
            out.append(f"    {src} -->|{label}| {dst}\n")
        else:
            out.append(f"    {src} --> {dst}\n")
    return "".join(out)