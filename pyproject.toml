[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "archdiagram"
version = "0.1.0"
description = "Render architecture graphs as Mermaid, PlantUML, C4, Structurizr, JSON, draw.io and Excalidraw diagrams."
requires-python = ">=3.10"
dependencies = []
keywords = [
    "architecture",
    "diagram",
    "mermaid",
    "plantuml",
    "c4",
    "structurizr",
    "drawio",
    "excalidraw",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Documentation",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["archdiagram"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
