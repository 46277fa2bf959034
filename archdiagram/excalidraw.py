"""Excalidraw JSON renderer with a layered layout and orthogonal arrows."""

from __future__ import annotations

import json
from collections import defaultdict
from dataclasses import dataclass
from typing import Any

from .common import Options, VisibleGraph, barycenter_order, prepare_graph, sanitize_id
from .graph import ArchGraph, Node, NodeType

_CELL_W = 200
_CELL_H = 60
_GAP_X = 100
_GAP_Y = 300
_MARGIN_X = 60
_MARGIN_Y = 60
_GROUP_PAD = 16
_GROUP_LABEL_SPACE = 24
_SEED_START = 1_000_000
_SEED_STEP = 7
_UPDATED = 1708000000000

_BG_COLORS = {
    NodeType.DATABASE: "#d5e8d4",
    NodeType.QUEUE: "#fff2cc",
    NodeType.CACHE: "#f8cecc",
    NodeType.EXTERNAL_API: "#e1d5e7",
    NodeType.ENDPOINT: "#f5f5f5",
}
_DEFAULT_BG = "#dae8fc"

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

_HTML_UNSAFE = (("<", "\\u003c"), (">", "\\u003e"), ("&", "\\u0026"))


class _Seeds:
    """Deterministic, increasing seeds so a graph renders identically every run."""

    def __init__(self) -> None:
        self._value = _SEED_START

    def next(self) -> int:
        self._value += _SEED_STEP
        return self._value


@dataclass
class _Bounds:
    min_x: int
    min_y: int
    max_x: int
    max_y: int

    def expand(self, x: int, y: int) -> None:
        self.min_x = min(self.min_x, x)
        self.min_y = min(self.min_y, y)
        self.max_x = max(self.max_x, x + _CELL_W)
        self.max_y = max(self.max_y, y + _CELL_H)


@dataclass
class _Ports:
    start_frac: float = 0.0
    end_frac: float = 0.0
    out_rank: int = 0
    out_total: int = 0


def _bg_color(node_type: NodeType) -> str:
    return _BG_COLORS.get(node_type, _DEFAULT_BG)


def _num(value: float) -> int | float:
    """Integral floats are written without a fractional part."""
    return int(value) if float(value).is_integer() else value


def _compute_depths(vg: VisibleGraph) -> tuple[dict[str, int], int]:
    node_ids = {n.id for n in vg.nodes}
    outgoing: dict[str, list[str]] = defaultdict(list)
    for e in vg.edges:
        if e.source in node_ids and e.target in node_ids:
            outgoing[e.source].append(e.target)

    depths: dict[str, int] = {}
    computing: set[str] = set()

    def compute(node_id: str) -> int:
        if node_id in depths:
            return depths[node_id]
        if node_id in computing:
            return 0  # cycle: tie-break at depth 0
        computing.add(node_id)
        d = max((compute(t) for t in outgoing.get(node_id, ())), default=-1) + 1
        depths[node_id] = d
        computing.discard(node_id)
        return d

    max_depth = max((compute(n.id) for n in vg.nodes), default=0)
    return depths, max(max_depth, 0)


def _row_width(count: int) -> int:
    return count * _CELL_W + (count - 1) * _GAP_X


def _common(element_id: str, element_type: str, seed: int) -> dict[str, Any]:
    return {
        "id": element_id,
        "type": element_type,
        "angle": 0,
        "fillStyle": "solid",
        "strokeStyle": "solid",
        "opacity": 100,
        "groupIds": [],
        "frameId": None,
        "seed": seed,
        "version": 1,
        "versionNonce": seed + 1,
        "isDeleted": False,
        "boundElements": None,
        "updated": _UPDATED,
        "link": None,
        "locked": False,
    }


def _rect(element_id: str, x: int, y: int, w: int, h: int, bg: str, seed: int) -> dict[str, Any]:
    element = _common(element_id, "rectangle", seed)
    element.update(
        x=x, y=y, width=w, height=h,
        strokeColor="#1e1e1e", backgroundColor=bg,
        strokeWidth=2, roughness=1, roundness={"type": 3},
    )
    return element


def _text(
    element_id: str, x: int, y: int, w: int, h: int,
    text: str, font_size: int, container_id: str | None, seed: int,
) -> dict[str, Any]:
    element = _common(element_id, "text", seed)
    element.update(
        x=x, y=y, width=w, height=h,
        strokeColor="#1e1e1e", backgroundColor="transparent",
        strokeWidth=2, roughness=1, roundness=None,
        text=text, fontSize=font_size, fontFamily=1,
        textAlign="center", verticalAlign="middle",
        containerId=container_id, originalText=text, lineHeight=1.25,
    )
    return element


def _arrow(element_id: str, x: float, y: float, points: list[tuple[float, float]], seed: int) -> dict[str, Any]:
    xs = [0.0, *(p[0] for p in points)]
    ys = [0.0, *(p[1] for p in points)]
    element = _common(element_id, "arrow", seed)
    element.update(
        x=_num(x), y=_num(y),
        width=_num(max(xs) - min(xs)), height=_num(max(ys) - min(ys)),
        strokeColor="#868e96", backgroundColor="transparent",
        strokeWidth=1, roughness=0, roundness={"type": 2},
        points=[[_num(px), _num(py)] for px, py in points],
        lastCommittedPoint=None, startBinding=None, endBinding=None,
        startArrowhead=None, endArrowhead="arrow",
    )
    return element


def _layout_nodes(
    layers: list[list[Node]], max_depth: int, max_width: int, seeds: _Seeds,
) -> tuple[list[dict[str, Any]], dict[str, tuple[int, int]], dict[NodeType, _Bounds]]:
    elements: list[dict[str, Any]] = []
    positions: dict[str, tuple[int, int]] = {}
    bounds: dict[NodeType, _Bounds] = {}
    for d in range(max_depth, -1, -1):
        nodes = layers[d]
        row = max_depth - d
        offset_x = (max_width - _row_width(len(nodes))) // 2
        for j, n in enumerate(nodes):
            node_type = NodeType(n.type)
            x = _MARGIN_X + offset_x + j * (_CELL_W + _GAP_X)
            y = _MARGIN_Y + row * (_CELL_H + _GAP_Y)
            rect_id = sanitize_id(n.id)
            positions[n.id] = (x, y)
            elements.append(_rect(rect_id, x, y, _CELL_W, _CELL_H, _bg_color(node_type), seeds.next()))
            elements.append(
                _text(rect_id + "_text", x + 10, y + 20, _CELL_W - 20, 25, n.name, 16, rect_id, seeds.next())
            )
            existing = bounds.get(node_type)
            if existing is None:
                bounds[node_type] = _Bounds(x, y, x + _CELL_W, y + _CELL_H)
            else:
                existing.expand(x, y)
    return elements, positions, bounds


def _group_frames(bounds: dict[NodeType, _Bounds], seeds: _Seeds) -> list[dict[str, Any]]:
    out: list[dict[str, Any]] = []
    for node_type, b in bounds.items():
        gx = b.min_x - _GROUP_PAD
        gy = b.min_y - _GROUP_PAD - _GROUP_LABEL_SPACE
        gw = b.max_x - b.min_x + 2 * _GROUP_PAD
        gh = b.max_y - b.min_y + 2 * _GROUP_PAD + _GROUP_LABEL_SPACE
        frame_id = f"group_{sanitize_id(node_type.value)}"
        frame = _rect(frame_id, gx, gy, gw, gh, _bg_color(node_type), seeds.next())
        frame["opacity"] = 20
        frame["strokeColor"] = _bg_color(node_type)
        out.append(frame)
        label = _GROUP_LABELS.get(node_type, _DEFAULT_GROUP_LABEL)
        out.append(_text(frame_id + "_label", gx + 8, gy + 4, gw - 16, 20, label, 12, None, seeds.next()))
    return out


def _distribute_ports(vg: VisibleGraph, positions: dict[str, tuple[int, int]]) -> list[_Ports]:
    """Spread attachment points across each cell so shared ends do not overlap."""
    ports = [_Ports() for _ in vg.edges]
    by_source: dict[str, list[int]] = defaultdict(list)
    by_target: dict[str, list[int]] = defaultdict(list)
    for i, e in enumerate(vg.edges):
        by_source[e.source].append(i)
        by_target[e.target].append(i)

    def x_of(node_id: str) -> int:
        return positions.get(node_id, (0, 0))[0]

    for indices in by_source.values():
        indices.sort(key=lambda i: x_of(vg.edges[i].target))
        total = len(indices)
        for rank, idx in enumerate(indices):
            ports[idx].start_frac = 0.15 + 0.7 * rank / (total - 1) if total > 1 else 0.5
            ports[idx].out_rank = rank
            ports[idx].out_total = total

    for indices in by_target.values():
        indices.sort(key=lambda i: x_of(vg.edges[i].source))
        total = len(indices)
        for rank, idx in enumerate(indices):
            ports[idx].end_frac = 0.15 + 0.7 * rank / (total - 1) if total > 1 else 0.5
    return ports


def _route_points(dx: float, dy: float, ports: _Ports) -> list[tuple[float, float]]:
    """Straight segment for small horizontal offsets, otherwise a fan-out channel."""
    if abs(dx) < 10:
        return [(0.0, 0.0), (0.0, dy)]
    channel_dy = 30.0
    if ports.out_total > 1:
        channel_dy = 30 + (_GAP_Y - 60) * ports.out_rank / (ports.out_total - 1)
    return [(0.0, 0.0), (0.0, channel_dy), (dx, channel_dy), (dx, dy)]


def _arrows(
    vg: VisibleGraph, ports: list[_Ports], positions: dict[str, tuple[int, int]], seeds: _Seeds,
) -> list[dict[str, Any]]:
    out: list[dict[str, Any]] = []
    for i, e in enumerate(vg.edges):
        src = positions.get(e.source, (0, 0))
        tgt = positions.get(e.target, (0, 0))
        pa = ports[i]
        start_x = src[0] + pa.start_frac * _CELL_W
        start_y = float(src[1] + _CELL_H)
        end_x = tgt[0] + pa.end_frac * _CELL_W
        end_y = float(tgt[1])
        points = _route_points(end_x - start_x, end_y - start_y, pa)
        out.append(_arrow(f"arrow_{i}", start_x, start_y, points, seeds.next()))
    return out


def _marshal(elements: list[dict[str, Any]]) -> str:
    document = {
        "type": "excalidraw",
        "version": 2,
        "source": "ridge",
        "elements": elements,
        "appState": {"viewBackgroundColor": "#ffffff"},
        "files": {},
    }
    text = json.dumps(document, indent=2, sort_keys=True, ensure_ascii=False)
    for char, escaped in _HTML_UNSAFE:
        text = text.replace(char, escaped)
    return text


def render(graph: ArchGraph, opts: Options | None = None) -> str:
    """Render the graph as Excalidraw JSON, roots at the top and leaves at the bottom."""
    opts = opts or Options()
    vg = prepare_graph(graph, opts)
    vg.transitive_reduce()

    depths, max_depth = _compute_depths(vg)
    layers: list[list[Node]] = [[] for _ in range(max_depth + 1)]
    for n in vg.nodes:
        layers[depths[n.id]].append(n)
    barycenter_order(layers, vg.edges)

    seeds = _Seeds()
    max_count = max((len(layer) for layer in layers), default=0) or 1
    max_width = _row_width(max_count)

    node_elements, positions, bounds = _layout_nodes(layers, max_depth, max_width, seeds)
    group_elements = _group_frames(bounds, seeds)
    ports = _distribute_ports(vg, positions)
    arrow_elements = _arrows(vg, ports, positions, seeds)

    return _marshal(group_elements + node_elements + arrow_elements)