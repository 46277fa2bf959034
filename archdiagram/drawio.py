"""draw.io (mxGraphModel XML) renderer with a layered top-down layout."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass

from .common import Options, VisibleGraph, barycenter_order, edge_label, prepare_graph, sanitize_id
from .graph import ArchGraph, Node, NodeType

_CELL_W = 200
_CELL_H = 60
_GAP_X = 60
_GAP_Y = 120
_MARGIN_X = 40
_MARGIN_Y = 40
_GROUP_PAD = 16
_GROUP_LABEL_SPACE = 20

_STYLES = {
    NodeType.DATABASE: (
        "shape=cylinder3;whiteSpace=wrap;html=1;boundedLbl=1;backgroundOutline=1;"
        "size=15;fillColor=#d5e8d4;strokeColor=#82b366;"
    ),
    NodeType.QUEUE: "shape=parallelogram;whiteSpace=wrap;html=1;fillColor=#fff2cc;strokeColor=#d6b656;",
    NodeType.CACHE: "rounded=1;whiteSpace=wrap;html=1;dashed=1;fillColor=#f8cecc;strokeColor=#b85450;",
    NodeType.EXTERNAL_API: "shape=cloud;whiteSpace=wrap;html=1;fillColor=#e1d5e7;strokeColor=#9673a6;",
    NodeType.ENDPOINT: "shape=hexagon;whiteSpace=wrap;html=1;fillColor=#f5f5f5;strokeColor=#666666;",
}
_DEFAULT_STYLE = "rounded=1;whiteSpace=wrap;html=1;fillColor=#dae8fc;strokeColor=#6c8ebf;"

_GROUP_LABELS = {
    NodeType.SERVICE: "Services",
    NodeType.DATABASE: "Data Stores",
    NodeType.QUEUE: "Queues",
    NodeType.CACHE: "Caches",
    NodeType.EXTERNAL_API: "External",
    NodeType.ENDPOINT: "Endpoints",
    NodeType.PACKAGE: "Packages",
    NodeType.MODULE: "Modules",
}
_DEFAULT_GROUP_LABEL = "Components"

_GROUP_COLORS = {
    NodeType.DATABASE: "#82b366",
    NodeType.QUEUE: "#d6b656",
    NodeType.CACHE: "#b85450",
    NodeType.EXTERNAL_API: "#9673a6",
    NodeType.ENDPOINT: "#666666",
}
_DEFAULT_GROUP_COLOR = "#6c8ebf"

_XML_ENTITIES = (
    ("&", "&amp;"),
    ("<", "&lt;"),
    (">", "&gt;"),
    ('"', "&quot;"),
    ("'", "&apos;"),
)


def xml_escape(text: str) -> str:
    """Escape the five XML special characters."""
    for char, entity in _XML_ENTITIES:
        text = text.replace(char, entity)
    return text


@dataclass
class _Bounds:
    min_x: int
    min_y: int
    max_x: int
    max_y: int
    label: str

    def expand(self, x: int, y: int) -> None:
        self.min_x = min(self.min_x, x)
        self.min_y = min(self.min_y, y)
        self.max_x = max(self.max_x, x + _CELL_W)
        self.max_y = max(self.max_y, y + _CELL_H)


def _depths(vg: VisibleGraph) -> dict[str, int]:
    """Longest outgoing path per node; leaves get 0, cycles are cut at 0."""
    node_ids = {n.id for n in vg.nodes}
    outgoing: dict[str, list[str]] = defaultdict(list)
    for e in vg.edges:
        if e.source in node_ids and e.target in node_ids:
            outgoing[e.source].append(e.target)

    depth: dict[str, int] = {}
    computing: set[str] = set()

    def compute(node_id: str) -> int:
        if node_id in depth:
            return depth[node_id]
        if node_id in computing:
            return 0
        computing.add(node_id)
        d = max((compute(t) for t in outgoing.get(node_id, ())), default=-1) + 1
        depth[node_id] = d
        computing.discard(node_id)
        return d

    for n in vg.nodes:
        compute(n.id)
    return depth


def _row_width(count: int) -> int:
    return count * _CELL_W + (count - 1) * _GAP_X


def render(graph: ArchGraph, opts: Options | None = None) -> str:
    """Render the graph as draw.io XML, roots at the top and leaves at the bottom."""
    opts = opts or Options()
    vg = prepare_graph(graph, opts)
    vg.transitive_reduce()

    out = [
        "<mxGraphModel>\n",
        "  <root>\n",
        '    <mxCell id="0"/>\n',
        '    <mxCell id="1" parent="0"/>\n',
    ]

    depth = _depths(vg)
    max_depth = max(depth.values(), default=0)
    layers: list[list[Node]] = [[] for _ in range(max_depth + 1)]
    for n in vg.nodes:
        layers[depth[n.id]].append(n)

    barycenter_order(layers, vg.edges)

    max_count = max((len(layer) for layer in layers), default=0) or 1
    max_width = _row_width(max_count)

    group_bounds: dict[NodeType, _Bounds] = {}
    for d in range(max_depth, -1, -1):
        nodes = layers[d]
        row = max_depth - d
        offset_x = (max_width - _row_width(len(nodes))) // 2
        for j, n in enumerate(nodes):
            node_type = NodeType(n.type)
            x = _MARGIN_X + offset_x + j * (_CELL_W + _GAP_X)
            y = _MARGIN_Y + row * (_CELL_H + _GAP_Y)
            style = _STYLES.get(node_type, _DEFAULT_STYLE)
            out.append(
                f'    <mxCell id="{sanitize_id(n.id)}" value="{xml_escape(n.name)}" '
                f'style="{style}" vertex="1" parent="1">\n'
            )
            out.append(
                f'      <mxGeometry x="{x}" y="{y}" width="{_CELL_W}" height="{_CELL_H}" as="geometry"/>\n'
            )
            out.append("    </mxCell>\n")

            bounds = group_bounds.get(node_type)
            if bounds is None:
                group_bounds[node_type] = _Bounds(
                    x, y, x + _CELL_W, y + _CELL_H,
                    _GROUP_LABELS.get(node_type, _DEFAULT_GROUP_LABEL),
                )
            else:
                bounds.expand(x, y)

    for node_type, b in group_bounds.items():
        gx = b.min_x - _GROUP_PAD
        gy = b.min_y - _GROUP_PAD - _GROUP_LABEL_SPACE
        gw = b.max_x - b.min_x + 2 * _GROUP_PAD
        gh = b.max_y - b.min_y + 2 * _GROUP_PAD + _GROUP_LABEL_SPACE
        color = _GROUP_COLORS.get(node_type, _DEFAULT_GROUP_COLOR)
        out.append(
            f'    <mxCell id="group_{sanitize_id(node_type.value)}" value="{xml_escape(b.label)}" '
            f'style="rounded=1;whiteSpace=wrap;html=1;fillColor={color};strokeColor={color};'
            f'opacity=30;verticalAlign=top;fontStyle=1;fontSize=12;" vertex="1" parent="1">\n'
        )
        out.append(f'      <mxGeometry x="{gx}" y="{gy}" width="{gw}" height="{gh}" as="geometry"/>\n')
        out.append("    </mxCell>\n")

    for i, e in enumerate(vg.edges):
        label = edge_label(e, vg.names.get(e.target, ""))
        out.append(
            f'    <mxCell id="edge_{i}" value="{xml_escape(label)}" '
            'style="curved=1;endArrow=blockThin;endFill=1;fontSize=11;" edge="1" '
            f'source="{sanitize_id(e.source)}" target="{sanitize_id(e.target)}" parent="1">\n'
        )
        out.append('      <mxGeometry relative="1" as="geometry"/>\n')
        out.append("    </mxCell>\n")

    out.append("  </root>\n")
    out.append("</mxGraphModel>\n")
    return "".join(out)