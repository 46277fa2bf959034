import pytest

from archdiagram.common import (
    Format,
    Options,
    ViewLevel,
    barycenter_order,
    default_options,
    edge_label,
    filter_graph,
    filter_nodes_by_view_level,
    keep_high_degree,
    prepare_graph,
    prune_super_nodes,
    sanitize_id,
)
from archdiagram.graph import ArchGraph, Edge, EdgeType, Node, NodeType


def make_test_graph():
    g = ArchGraph("/tmp")
    g.add_node(Node("pkg:a", "A", NodeType.PACKAGE))
    g.add_node(Node("pkg:b", "B", NodeType.PACKAGE))
    g.add_node(Node("pkg:c", "C", NodeType.PACKAGE))
    g.add_node(Node("pkg:logging", "logging", NodeType.PACKAGE))
    g.add_edge(Edge("pkg:a", "pkg:logging", EdgeType.DEPENDENCY))
    g.add_edge(Edge("pkg:b", "pkg:logging", EdgeType.DEPENDENCY))
    g.add_edge(Edge("pkg:c", "pkg:logging", EdgeType.DEPENDENCY))
    g.add_edge(Edge("pkg:a", "pkg:b", EdgeType.DEPENDENCY))
    return g


def make_test_visible_graph():
    return filter_graph(make_test_graph(), ViewLevel.COMPONENT)


def test_default_options():
    opts = default_options()
    assert opts.format is Format.MERMAID
    assert opts.view_level is ViewLevel.CONTAINER
    assert opts.direction == "TB"


def test_prune_super_nodes_disabled():
    vg = make_test_visible_graph()
    assert prune_super_nodes(vg, 0) == []
    assert len(vg.nodes) == 4


def test_prune_super_nodes_prunes_high_fan_in():
    vg = make_test_visible_graph()
    pruned = prune_super_nodes(vg, 0.5)
    assert pruned == ["logging"]
    assert all(n.id != "pkg:logging" for n in vg.nodes)
    assert all("pkg:logging" not in (e.source, e.target) for e in vg.edges)
    assert len(vg.edges) == 1
    assert "pkg:logging" not in vg.ids


def test_prune_super_nodes_threshold_at_100():
    vg = make_test_visible_graph()
    assert prune_super_nodes(vg, 1.0) == []


def test_prune_super_nodes_no_edges():
    g = ArchGraph("/tmp")
    g.add_node(Node("svc:a", "A", NodeType.SERVICE))
    vg = filter_graph(g, ViewLevel.COMPONENT)
    assert prune_super_nodes(vg, 0.5) == []


def test_prune_super_nodes_multiple():
    g = ArchGraph("/tmp")
    for node_id, name in [("pkg:a", "A"), ("pkg:b", "B"), ("pkg:c", "C"),
                          ("pkg:fmt", "fmt"), ("pkg:errors", "errors")]:
        g.add_node(Node(node_id, name, NodeType.PACKAGE))
    for target in ("pkg:fmt", "pkg:errors"):
        for source in ("pkg:a", "pkg:b", "pkg:c"):
            g.add_edge(Edge(source, target, EdgeType.DEPENDENCY))
    vg = filter_graph(g, ViewLevel.COMPONENT)
    pruned = sorted(prune_super_nodes(vg, 0.5))
    assert pruned == ["errors", "fmt"]
    assert len(vg.nodes) == 3
    assert len(vg.edges) == 0


def test_prepare_graph_with_pruning():
    vg = prepare_graph(make_test_graph(), Options(view_level=ViewLevel.COMPONENT, prune_threshold=0.5))
    assert vg.pruned_nodes == ["logging"]


def test_prepare_graph_without_pruning():
    vg = prepare_graph(make_test_graph(), Options(view_level=ViewLevel.COMPONENT))
    assert vg.pruned_nodes == []
    assert len(vg.nodes) == 4


def test_keep_high_degree_cascade_to_empty():
    g = ArchGraph("/tmp")
    for name in ("hub", "l1", "l2", "l3"):
        g.add_node(Node("pkg:" + name, name, NodeType.PACKAGE))
    for leaf in ("l1", "l2", "l3"):
        g.add_edge(Edge("pkg:" + leaf, "pkg:hub", EdgeType.DEPENDENCY))
    vg = filter_graph(g, ViewLevel.COMPONENT)
    keep_high_degree(vg, 4)
    assert vg.nodes == []
    assert vg.ids == set()


def test_keep_high_degree_keeps_dense_subgraph():
    g = ArchGraph("/tmp")
    for node_id, name in [("pkg:a", "A"), ("pkg:b", "B"), ("pkg:c", "C"), ("pkg:leaf", "leaf")]:
        g.add_node(Node(node_id, name, NodeType.PACKAGE))
    g.add_edge(Edge("pkg:a", "pkg:b", EdgeType.DEPENDENCY))
    g.add_edge(Edge("pkg:b", "pkg:c", EdgeType.DEPENDENCY))
    g.add_edge(Edge("pkg:c", "pkg:a", EdgeType.DEPENDENCY))
    g.add_edge(Edge("pkg:leaf", "pkg:a", EdgeType.DEPENDENCY))
    vg = filter_graph(g, ViewLevel.COMPONENT)
    keep_high_degree(vg, 2)
    assert len(vg.nodes) == 3
    assert all(n.id != "pkg:leaf" for n in vg.nodes)


def test_keep_high_degree_disabled():
    vg = make_test_visible_graph()
    keep_high_degree(vg, 0)
    assert len(vg.nodes) == 4


def test_filter_nodes_by_view_level():
    nodes = [
        Node("svc:api", "API", NodeType.SERVICE),
        Node("pkg:utils", "utils", NodeType.PACKAGE),
        Node("ep:health", "GET /health", NodeType.ENDPOINT),
        Node("db:pg", "PG", NodeType.DATABASE),
        Node("note:n", "note", NodeType.NOTE),
    ]
    assert [n.id for n in filter_nodes_by_view_level(nodes, ViewLevel.SYSTEM)] == ["svc:api"]
    assert [n.id for n in filter_nodes_by_view_level(nodes, ViewLevel.CONTAINER)] == [
        "svc:api", "db:pg", "note:n"]
    assert len(filter_nodes_by_view_level(nodes, "component")) == 5


def test_filter_graph_deduplicates_resolved_edges():
    g = ArchGraph("/project")
    g.add_node(Node("pkg:a/a", "a", NodeType.PACKAGE, path="/project/a"))
    g.add_node(Node("pkg:b/b", "b", NodeType.PACKAGE, path="/project/b"))
    g.add_edge(Edge("pkg:a/a", "import:github.com/x/project/b", EdgeType.DEPENDENCY))
    g.add_edge(Edge("pkg:a/a", "import:github.com/x/project/b", EdgeType.DEPENDENCY))
    vg = filter_graph(g, ViewLevel.COMPONENT)
    assert len(vg.edges) == 1


def test_filter_graph_skips_self_edges():
    g = ArchGraph("/project")
    g.add_node(Node("pkg:a/a", "a", NodeType.PACKAGE, path="/project/a"))
    g.add_edge(Edge("pkg:a/a", "import:github.com/x/project/a", EdgeType.DEPENDENCY))
    vg = filter_graph(g, ViewLevel.COMPONENT)
    assert len(vg.edges) == 0


def test_filter_graph_drops_edges_to_hidden_nodes():
    g = ArchGraph("/tmp")
    g.add_node(Node("svc:api", "API", NodeType.SERVICE))
    g.add_node(Node("pkg:utils", "utils", NodeType.PACKAGE))
    g.add_edge(Edge("svc:api", "pkg:utils", EdgeType.DEPENDENCY))
    vg = filter_graph(g, ViewLevel.SYSTEM)
    assert vg.edges == []
    assert vg.names == {"svc:api": "API"}


def test_transitive_reduce_removes_redundant_edges():
    g = ArchGraph("/tmp")
    for name in ("a", "b", "c"):
        g.add_node(Node("pkg:" + name, name, NodeType.PACKAGE))
    g.add_edge(Edge("pkg:a", "pkg:b", EdgeType.DEPENDENCY))
    g.add_edge(Edge("pkg:b", "pkg:c", EdgeType.DEPENDENCY))
    g.add_edge(Edge("pkg:a", "pkg:c", EdgeType.DEPENDENCY))
    vg = filter_graph(g, ViewLevel.COMPONENT)
    assert len(vg.edges) == 3
    vg.transitive_reduce()
    assert len(vg.edges) == 2
    assert all(not (e.source == "pkg:a" and e.target == "pkg:c") for e in vg.edges)


def test_transitive_reduce_preserves_different_types():
    g = ArchGraph("/tmp")
    for name in ("a", "b", "c"):
        g.add_node(Node("svc:" + name, name, NodeType.SERVICE))
    g.add_edge(Edge("svc:a", "svc:b", EdgeType.DEPENDENCY))
    g.add_edge(Edge("svc:b", "svc:c", EdgeType.DEPENDENCY))
    g.add_edge(Edge("svc:a", "svc:c", EdgeType.API_CALL))
    vg = filter_graph(g, ViewLevel.CONTAINER)
    vg.transitive_reduce()
    assert len(vg.edges) == 3


def test_transitive_reduce_deep_chain():
    g = ArchGraph("/tmp")
    for name in ("a", "b", "c", "d"):
        g.add_node(Node("pkg:" + name, name, NodeType.PACKAGE))
    for source, target in [("a", "b"), ("b", "c"), ("c", "d"), ("a", "c"), ("a", "d")]:
        g.add_edge(Edge("pkg:" + source, "pkg:" + target, EdgeType.DEPENDENCY))
    vg = filter_graph(g, ViewLevel.COMPONENT)
    vg.transitive_reduce()
    assert len(vg.edges) == 3


def test_barycenter_order_reduces_crossings():
    a, b, c, d = (Node(x, x, NodeType.PACKAGE) for x in "abcd")
    layers = [[a, b], [c, d]]
    edges = [Edge("a", "d", EdgeType.DEPENDENCY), Edge("b", "c", EdgeType.DEPENDENCY)]
    barycenter_order(layers, edges)
    assert [n.id for n in layers[1]] == ["d", "c"]
    assert [n.id for n in layers[0]] == ["a", "b"]


def test_barycenter_order_single_layer_untouched():
    b, a = Node("b", "b", NodeType.PACKAGE), Node("a", "a", NodeType.PACKAGE)
    layers = [[b, a]]
    barycenter_order(layers, [])
    assert [n.id for n in layers[0]] == ["b", "a"]


@pytest.mark.parametrize(
    "label, edge_type, target_name, expected",
    [
        ("", EdgeType.DEPENDENCY, "utils", ""),
        ("dependency", EdgeType.DEPENDENCY, "utils", ""),
        ("utils", EdgeType.DEPENDENCY, "utils", ""),
        ("queries", EdgeType.READ_WRITE, "PostgreSQL", "queries"),
        ("HTTP", EdgeType.API_CALL, "gateway", "HTTP"),
    ],
)
def test_edge_label(label, edge_type, target_name, expected):
    edge = Edge("x", "y", edge_type, label)
    assert edge_label(edge, target_name) == expected


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("svc:api", "svc___api"),
        ("pkg/utils", "pkg__utils"),
        ("node.name", "node_name"),
        ("my-service", "my_service"),
        ("api/v1", "api__v1"),
        ("api.v1", "api_v1"),
        ("api:v1", "api___v1"),
    ],
)
def test_sanitize_id(raw, expected):
    assert sanitize_id(raw) == expected


def test_sanitize_id_replaces_other_punctuation():
    result = sanitize_id("note:Article (draft)")
    assert all(ch.isascii() and (ch.isalnum() or ch == "_") for ch in result)
    assert result.startswith("note___Article")