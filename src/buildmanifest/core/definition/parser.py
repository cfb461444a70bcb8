# core/definition/parser.py
"""
Manifest Definition Parser
==========================

TOML-based manifest definition parser with Jinja2 template support.

Manifest definitions are TOML files with the following structure:

```toml
[manifest]
name = "fedora-container"
description = "Fedora container tarball"
version = "1.0"

[variables]
release = "39"

[platform]
arch = "x86_64"

[[repositories]]
id = "fedora"
baseurl = "https://dl.fedoraproject.org/pub/fedora/linux/releases/{{ release }}/Everything/x86_64/os/"

[[pipelines]]
name = "build"
kind = "build"
options = { runner = "org.osbuild.fedora{{ release }}", packages = ["dnf", "rpm"] }

[[pipelines]]
name = "os"
kind = "os"
build = "build"
checkpoint = true
options = { packages = ["@core"], hostname = "fedora" }

[[pipelines]]
name = "archive"
kind = "archive"
build = "build"
tree = "os"
export = true
options = { filename = "fedora.tar" }
```

This module provides:
- ManifestDefinition: Data class representing a parsed definition
- PipelineDefinition: Data class for individual pipelines
- parse_definition: Parse TOML file to ManifestDefinition object
- render_definition: Render Jinja2 templates in a definition
- definition_to_toml: Convert a definition back to TOML
- load_package_specs: Load resolved package specs from a JSON file
"""

import json
import re
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Union

from jinja2 import BaseLoader, Environment, UndefinedError

from buildmanifest.core.descriptors import PackageSpec
from buildmanifest.core.exceptions import DefinitionError
from buildmanifest.core.logger import get_logger

logger = get_logger(__name__)

# Use tomli for Python < 3.11, tomllib for Python >= 3.11
if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

__all__ = [
    "ManifestDefinition",
    "PipelineDefinition",
    "parse_definition",
    "parse_definition_string",
    "render_definition",
    "definition_to_toml",
    "load_package_specs",
]


@dataclass
class PipelineDefinition:
    """
    A single pipeline in a manifest definition.

    Attributes:
        name: Unique pipeline name
        kind: Pipeline kind (e.g., "build", "os", "archive")
        build: Name of the build root pipeline
        tree: Name of the pipeline whose tree is used as input
        checkpoint: Whether the pipeline output may be cached
        export: Whether the pipeline output is exported
        description: Human-readable description
        options: Kind-specific options
    """

    name: str
    kind: str
    build: Optional[str] = None
    tree: Optional[str] = None
    checkpoint: bool = False
    export: bool = False
    description: str = ""
    options: Dict[str, Any] = field(default_factory=dict)

    @property
    def references(self) -> List[str]:
        """Names of the pipelines this pipeline refers to."""
        return [ref for ref in (self.build, self.tree) if ref]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        d: Dict[str, Any] = {"name": self.name, "kind": self.kind}
        if self.build:
            d["build"] = self.build
        if self.tree:
            d["tree"] = self.tree
        if self.checkpoint:
            d["checkpoint"] = True
        if self.export:
            d["export"] = True
        if self.description:
            d["description"] = self.description
        if self.options:
            d["options"] = self.options
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PipelineDefinition":
        """Create from dictionary."""
        for key in ("name", "kind"):
            if key not in data:
                raise DefinitionError(f"Pipeline is missing required key '{key}'", "pipelines")
        return cls(
            name=data["name"],
            kind=data["kind"],
            build=data.get("build"),
            tree=data.get("tree"),
            checkpoint=data.get("checkpoint", False),
            export=data.get("export", False),
            description=data.get("description", ""),
            options=data.get("options", {}),
        )


@dataclass
class ManifestDefinition:
    """
    A complete manifest definition.

    Attributes:
        name: Manifest name
        pipelines: List of pipeline definitions
        description: Manifest description
        version: Definition version
        variables: Default variable values for templates
        platform: Target platform settings
        repositories: Package repositories shared by all pipelines
        metadata: Additional metadata
    """

    name: str
    pipelines: List[PipelineDefinition]
    description: str = ""
    version: str = "1.0"
    variables: Dict[str, Any] = field(default_factory=dict)
    platform: Dict[str, Any] = field(default_factory=dict)
    repositories: List[Dict[str, Any]] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)
    source_path: Optional[str] = None

    @property
    def pipeline_names(self) -> Set[str]:
        """Get set of all pipeline names."""
        return {p.name for p in self.pipelines}

    def get_pipeline(self, name: str) -> Optional[PipelineDefinition]:
        """Get pipeline definition by name."""
        for pipeline in self.pipelines:
            if pipeline.name == name:
                return pipeline
        return None

    def get_construction_order(self) -> List[str]:
        """
        Get the order pipelines must be constructed in.

        Referenced pipelines come before the pipelines referring to them;
        otherwise declaration order is kept.

        Returns:
            List of pipeline names in construction order
        """
        graph = {p.name: set(p.references) for p in self.pipelines}
        available = set(graph)

        for name, deps in graph.items():
            missing = deps - available
            if missing:
                raise ValueError(f"Pipeline '{name}' references unknown pipelines: {sorted(missing)}")

        # Kahn's algorithm, always taking the earliest declared ready pipeline
        declared = [p.name for p in self.pipelines]
        in_degree = {name: len(deps) for name, deps in graph.items()}
        result: List[str] = []

        while len(result) < len(graph):
            ready = [n for n in declared if in_degree[n] == 0 and n not in result]
            if not ready:
                raise ValueError("Circular reference detected between pipelines")
            current = ready[0]
            result.append(current)
            for name, deps in graph.items():
                if current in deps:
                    in_degree[name] -= 1

        return result

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "manifest": {
                "name": self.name,
                "description": self.description,
                "version": self.version,
            },
            "variables": self.variables,
            "platform": self.platform if self.platform else None,
            "repositories": self.repositories if self.repositories else None,
            "pipelines": [p.to_dict() for p in self.pipelines],
            "metadata": self.metadata if self.metadata else None,
        }

    @classmethod
    def from_dict(
        cls,
        data: Dict[str, Any],
        source_path: Optional[str] = None,
    ) -> "ManifestDefinition":
        """Create from dictionary."""
        manifest_info = data.get("manifest", {})
        pipelines_data = data.get("pipelines", [])

        return cls(
            name=manifest_info.get("name", "unnamed"),
            description=manifest_info.get("description", ""),
            version=str(manifest_info.get("version", "1.0")),
            pipelines=[PipelineDefinition.from_dict(p) for p in pipelines_data],
            variables=data.get("variables", {}),
            platform=data.get("platform", {}),
            repositories=data.get("repositories", []),
            metadata=data.get("metadata", {}),
            source_path=source_path,
        )


def parse_definition(
    filepath: Union[str, Path],
    variables: Optional[Dict[str, Any]] = None,
    render_templates: bool = True,
) -> ManifestDefinition:
    """
    Parse a manifest definition from a TOML file.

    Args:
        filepath: Path to the TOML definition file
        variables: Override variables
        render_templates: Whether to render Jinja2 templates

    Returns:
        Parsed ManifestDefinition object
    """
    filepath = Path(filepath)
    if not filepath.exists():
        raise FileNotFoundError(f"Definition file not found: {filepath}")

    with open(filepath, "rb") as f:
        try:
            data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise DefinitionError(f"Invalid TOML: {e}", str(filepath)) from e

    definition = ManifestDefinition.from_dict(data, source_path=str(filepath))

    if variables:
        definition.variables.update(variables)

    if render_templates:
        definition = render_definition(definition)

    return definition


def parse_definition_string(
    content: str,
    variables: Optional[Dict[str, Any]] = None,
    render_templates: bool = True,
) -> ManifestDefinition:
    """
    Parse a manifest definition from a TOML string.

    Args:
        content: TOML content string
        variables: Override variables
        render_templates: Whether to render Jinja2 templates

    Returns:
        Parsed ManifestDefinition object
    """
    try:
        data = tomllib.loads(content)
    except tomllib.TOMLDecodeError as e:
        raise DefinitionError(f"Invalid TOML: {e}") from e

    definition = ManifestDefinition.from_dict(data)

    if variables:
        definition.variables.update(variables)

    if render_templates:
        definition = render_definition(definition)

    return definition


def render_definition(
    definition: ManifestDefinition,
    extra_variables: Optional[Dict[str, Any]] = None,
) -> ManifestDefinition:
    """
    Render Jinja2 templates in a manifest definition.

    Strings in pipeline options, the platform and the repositories are
    rendered; names and references are not.

    Args:
        definition: Definition to render
        extra_variables: Additional variables for rendering

    Returns:
        New ManifestDefinition with rendered templates
    """
    context = {**definition.variables}
    if extra_variables:
        context.update(extra_variables)

    env = Environment(loader=BaseLoader())

    def render_value(value: Any) -> Any:
        """Recursively render Jinja2 templates in a value."""
        if isinstance(value, str) and "{{" in value:
            try:
                return env.from_string(value).render(context)
            except UndefinedError as e:
                logger.warning(f"Template rendering error: {e}")
                return value
        elif isinstance(value, dict):
            return {k: render_value(v) for k, v in value.items()}
        elif isinstance(value, list):
            return [render_value(v) for v in value]
        return value

    rendered_pipelines = [
        PipelineDefinition(
            name=p.name,
            kind=p.kind,
            build=p.build,
            tree=p.tree,
            checkpoint=p.checkpoint,
            export=p.export,
            description=p.description,
            options=render_value(p.options),
        )
        for p in definition.pipelines
    ]

    return ManifestDefinition(
        name=definition.name,
        description=definition.description,
        version=definition.version,
        pipelines=rendered_pipelines,
        variables=definition.variables,
        platform=render_value(definition.platform),
        repositories=render_value(definition.repositories),
        metadata=definition.metadata,
        source_path=definition.source_path,
    )


def definition_to_toml(definition: ManifestDefinition) -> str:
    """
    Convert a ManifestDefinition to TOML string.

    Args:
        definition: Definition to convert

    Returns:
        TOML string representation
    """
    lines = []

    lines.append("[manifest]")
    lines.append(f"name = {_format_toml_value(definition.name)}")
    if definition.description:
        lines.append(f"description = {_format_toml_value(definition.description)}")
    lines.append(f"version = {_format_toml_value(definition.version)}")
    lines.append("")

    if definition.variables:
        lines.append("[variables]")
        for key, value in definition.variables.items():
            lines.append(f"{_format_toml_key(key)} = {_format_toml_value(value)}")
        lines.append("")

    if definition.platform:
        lines.append("[platform]")
        for key, value in definition.platform.items():
            lines.append(f"{_format_toml_key(key)} = {_format_toml_value(value)}")
        lines.append("")

    for repo in definition.repositories:
        lines.append("[[repositories]]")
        for key, value in repo.items():
            lines.append(f"{_format_toml_key(key)} = {_format_toml_value(value)}")
        lines.append("")

    for pipeline in definition.pipelines:
        lines.append("[[pipelines]]")
        lines.append(f"name = {_format_toml_value(pipeline.name)}")
        lines.append(f"kind = {_format_toml_value(pipeline.kind)}")

        if pipeline.description:
            lines.append(f"description = {_format_toml_value(pipeline.description)}")
        if pipeline.build:
            lines.append(f"build = {_format_toml_value(pipeline.build)}")
        if pipeline.tree:
            lines.append(f"tree = {_format_toml_value(pipeline.tree)}")
        if pipeline.checkpoint:
            lines.append("checkpoint = true")
        if pipeline.export:
            lines.append("export = true")
        if pipeline.options:
            lines.append(f"options = {_format_toml_value(pipeline.options)}")

        lines.append("")

    return "\n".join(lines)


_BARE_KEY = re.compile(r"^[A-Za-z0-9_-]+$")


def _format_toml_key(key: str) -> str:
    if _BARE_KEY.match(key):
        return key
    return json.dumps(key)


def _format_toml_value(value: Any) -> str:
    """Format a value as an inline TOML value."""
    if isinstance(value, str):
        return json.dumps(value)
    elif isinstance(value, bool):
        return str(value).lower()
    elif isinstance(value, (int, float)):
        return str(value)
    elif isinstance(value, (list, tuple)):
        return "[" + ", ".join(_format_toml_value(v) for v in value) + "]"
    elif isinstance(value, dict):
        if not value:
            return "{}"
        items = ", ".join(
            f"{_format_toml_key(k)} = {_format_toml_value(v)}" for k, v in value.items()
        )
        return f"{{ {items} }}"
    else:
        return json.dumps(str(value))


def load_package_specs(filepath: Union[str, Path]) -> Dict[str, List[List[PackageSpec]]]:
    """
    Load resolved package specs from a JSON file.

    The file maps each pipeline name to a list of resolved sets, one per set
    of that pipeline's package set chain:

        {"build": [[{"name": "rpm", "version": "4.19.1", ...}]], "os": [[...], [...]]}

    Args:
        filepath: Path to the JSON file

    Returns:
        Pipeline name -> list of resolved package lists
    """
    path = Path(filepath)
    if not path.exists():
        raise FileNotFoundError(f"Package specs file not found: {filepath}")

    with open(path, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise DefinitionError(f"Invalid JSON: {e}", str(filepath)) from e

    if not isinstance(data, dict):
        raise DefinitionError("Expected an object mapping pipeline names to package sets", str(filepath))

    try:
        return {
            name: [[PackageSpec.from_dict(spec) for spec in specs] for specs in sets]
            for name, sets in data.items()
        }
    except (KeyError, TypeError, ValueError) as e:
        raise DefinitionError(f"Malformed package spec: {e}", str(filepath)) from e
