# archdiagram

archdiagram turns an architecture graph into diagram source text. A graph holds
services, modules, packages, databases, queues, caches, external APIs,
endpoints and notes, joined by typed edges (dependency, API call, data flow,
read/write). The same graph can be rendered as:

- Mermaid: `archdiagram.mermaid.render`
- PlantUML: `archdiagram.plantuml.render`
- C4-PlantUML: `archdiagram.c4.render`
- Structurizr DSL: `archdiagram.structurizr.render`
- structured JSON: `archdiagram.jsonview.render`
- draw.io XML: `archdiagram.drawio.render`
- Excalidraw JSON: `archdiagram.excalidraw.render`

The package also has a small JSON registry of repositories
(`archdiagram.registry`). It also has checks for filesystem paths
(`archdiagram.safepath`).

## Installation

```
pip install .
```

The package has no runtime dependencies. To run its tests:

```
pip install ".[test]"
pytest
```

## Building a graph

```python
from archdiagram.graph import ArchGraph, Node, Edge, NodeType, EdgeType

graph = ArchGraph("/path/to/project")
graph.add_node(Node(id="svc:api", name="API Server", type=NodeType.SERVICE))
graph.add_node(Node(id="db:postgres", name="PostgreSQL", type=NodeType.DATABASE))
graph.add_edge(Edge(source="svc:api", target="db:postgres",
                    type=EdgeType.READ_WRITE, label="queries"))
```

`Node` also takes optional `language` and `path` fields. `ArchGraph` takes an
optional `topology` string. A node added with an id that already exists
replaces the earlier node.

### Import edges

An edge whose target starts with `import:` is resolved by
`ArchGraph.resolved_edges()`:

- The import is matched against package nodes whose `path` lies under the
  graph's root path. It matches when it equals the package's path relative to
  the root, or ends with `/` followed by that relative path. The longest
  matching path wins.
- Imports that match no package are dropped.
- Imports that resolve back to their own source are dropped.
- Duplicate resolved edges collapse to one.

## Rendering

Every renderer has the same signature, `render(graph, opts)`, and returns the
diagram as a string. If `opts` is omitted, `Options()` is used.

```python
from archdiagram import mermaid, drawio
from archdiagram.common import Options, ViewLevel, Theme, default_options

print(mermaid.render(graph, default_options()))

opts = Options(
    view_level=ViewLevel.COMPONENT,
    title="My Architecture",
    direction="LR",
    theme=Theme(bg="#ffffff", fg="#1e293b"),
    prune_threshold=0.5,   # drop nodes that more than half of all edge sources point at
    min_degree=2,          # drop nodes with fewer than two edges, repeatedly
)
xml = drawio.render(graph, opts)
```

Before a renderer draws anything, `prepare_graph` does three things, in order:

1. It filters nodes by view level and keeps only the resolved edges whose two
   ends are both visible.
2. It prunes super nodes, if `prune_threshold` is above 0. These are nodes
   whose share of distinct incoming sources exceeds the threshold.
3. It drops nodes whose total degree is below `min_degree`, if `min_degree` is
   above 0. This step repeats until no more nodes drop.

Every renderer except JSON then removes transitive edges. An edge is removed
when a longer path of edges of the same type already connects its two ends.

Notes on individual options and renderers:

- `Options.format` is carried along but does not choose a renderer. Call the
  renderer module you want directly.
- `direction` is used by Mermaid (default `TB`). PlantUML only uses `LR`.
- `theme` is only used by Mermaid. It adds an `%%{init}%%` directive whose
  colours are mixed from the two colours given. The theme is skipped if either
  colour is missing or is not valid `#RGB`/`#RRGGBB`. The helpers
  `mermaid.parse_hex` and `mermaid.theme_init` are public.
- draw.io and Excalidraw place nodes in layers: roots at the top, leaves at the
  bottom. Within each layer, nodes are ordered to reduce edge crossings. Each
  node type is framed as a group. Excalidraw output is deterministic for a
  given graph.

### View levels

- `ViewLevel.SYSTEM`: shows only services and external APIs.
- `ViewLevel.CONTAINER`: shows everything except packages and endpoints.
- `ViewLevel.COMPONENT`: shows every node.

### Lower-level helpers

`archdiagram.common` provides the building blocks that the renderers use:

- `filter_nodes_by_view_level`
- `filter_graph`
- `prune_super_nodes`
- `keep_high_degree`
- `prepare_graph`
- `barycenter_order`
- `edge_label`
- `sanitize_id`
- `VisibleGraph.transitive_reduce`

`archdiagram.drawio.xml_escape` escapes the five XML special characters.

## Repository registry

`archdiagram.registry` keeps a JSON registry of repositories, each under a safe
alias. It also gives the path of each repository's scan-state file.

```python
from archdiagram import registry

reg = registry.load()          # defaults to registry.default_state_dir(): ~/.mcp-context/ridge
reg.add("myrepo", "/path/to/myrepo")
reg.update_scan_info("myrepo", 10, 20, "monolith")
reg.save()

for entry in reg.entries():
    print(entry.alias, entry.repo.path, "stale" if entry.stale else "")
```

How the registry behaves:

- Aliases must start with a letter or digit and may contain only letters,
  digits, `_`, `-` and `.`. They may be at most 64 characters long.
  `registry.validate_alias` checks this.
- `Registry.add`, `remove` and `get` raise `registry.RegistryError` for a bad,
  duplicate or unknown alias.
- `remove` also deletes the alias's state file (`Registry.state_path`) if that
  file exists.
- `load` returns an empty registry when the file is missing. It drops any
  stored aliases that fail validation.
- `save` writes the file atomically.

## Path safety

`archdiagram.safepath` has two checks. Each raises `UnsafePathError` when a path
is not safe to use.

- `validate_scan_path(path)` refuses `/etc`, `/proc`, `/sys` and `/dev`. It also
  refuses `~/.ssh`, `~/.gnupg`, `~/.aws` and `~/.config/gcloud`. The path is
  checked both as given and with symlinks resolved. The path must be an
  existing directory. On success it returns the absolute path.
- `validate_output_path(file_path, base_dir)` requires the file to resolve
  strictly inside `base_dir`. Symlinks are resolved in `base_dir` and in the
  deepest existing ancestor of the file, so the file itself need not exist. On
  success it returns the resolved file path.

## What the package does not do

- It does not scan source code or build graphs by itself. You build an
  `ArchGraph` yourself.
- It has no command-line interface and no server.
- `Format` lists `html` and `forcegraph`, but the package has no renderer for
  either.
- The registry only records repositories and scan metadata. It does not store
  the contents of the scan-state files.