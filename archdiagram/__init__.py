"""Architecture graph model, diagram renderers, a repository registry and path checks."""

__version__ = "0.1.0"

__all__ = [
    "graph",
    "common",
    "mermaid",
    "plantuml",
    "c4",
    "structurizr",
    "jsonview",
    "drawio",
    "excalidraw",
    "registry",
    "safepath",
]