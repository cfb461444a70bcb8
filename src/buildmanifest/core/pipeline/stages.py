# core/pipeline/stages.py
"""
Stage Descriptions
==================

The engine-consumable shapes a pipeline serializes into.

A StageDescription is the serialized form of one pipeline:

    {"name": "os", "build": "name:build", "stages": [...]}

``build`` is present only when the pipeline has a build root, and always has
the form ``"name:" + <build root name>``. ``runner`` is present only on build
roots. ``stages`` is omitted when a pipeline contributes no stages.
"""

import hashlib
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from buildmanifest.core.descriptors import PackageSpec

__all__ = [
    "NAME_PREFIX",
    "Stage",
    "StageDescription",
    "pipeline_ref",
    "files_input",
    "tree_input",
    "rpm_stage",
    "inline_files_stage",
    "inline_checksum",
]

NAME_PREFIX = "name:"


def pipeline_ref(name: str) -> str:
    """Symbolic reference to another pipeline of the same manifest."""
    return NAME_PREFIX + name


def inline_checksum(data: str) -> str:
    """Content address of an inline blob."""
    return "sha256:" + hashlib.sha256(data.encode("utf-8")).hexdigest()


@dataclass
class Stage:
    """A single step of type-specific content inside a pipeline."""

    type: str
    options: Dict[str, Any] = field(default_factory=dict)
    inputs: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        d: Dict[str, Any] = {"type": self.type}
        if self.inputs:
            d["inputs"] = self.inputs
        if self.options:
            d["options"] = self.options
        return d


@dataclass
class StageDescription:
    """
    Serialized form of one pipeline.

    Attributes:
        name: Pipeline name
        build: Reference to the build root, ``"name:<build root>"``
        runner: Runner to use when this pipeline serves as a build root
        stages: Type-specific stages appended by concrete pipeline kinds
    """

    name: str
    build: Optional[str] = None
    runner: Optional[str] = None
    stages: List[Stage] = field(default_factory=list)

    def add_stage(self, stage: Stage) -> None:
        self.stages.append(stage)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        d: Dict[str, Any] = {"name": self.name}
        if self.build is not None:
            d["build"] = self.build
        if self.runner is not None:
            d["runner"] = self.runner
        if self.stages:
            d["stages"] = [stage.to_dict() for stage in self.stages]
        return d


def files_input(checksums: Sequence[str]) -> Dict[str, Any]:
    """Input referencing content by checksum from the manifest sources."""
    return {
        "type": "org.osbuild.files",
        "origin": "org.osbuild.source",
        "references": {checksum: {} for checksum in checksums},
    }


def tree_input(pipeline_name: str) -> Dict[str, Any]:
    """Input referencing the tree produced by another pipeline."""
    return {
        "type": "org.osbuild.tree",
        "origin": "org.osbuild.pipeline",
        "references": [pipeline_ref(pipeline_name)],
    }


def rpm_stage(packages: Sequence[PackageSpec], gpg_keys: Sequence[str] = ()) -> Stage:
    """Stage installing the given resolved packages."""
    options: Dict[str, Any] = {}
    if gpg_keys:
        options["gpgkeys"] = list(gpg_keys)
    return Stage(
        type="org.osbuild.rpm",
        inputs={"packages": files_input([p.checksum for p in packages])},
        options=options,
    )


def inline_files_stage(files: Dict[str, str]) -> Stage:
    """Stage copying inline content to absolute paths inside the tree."""
    inputs: Dict[str, Any] = {}
    paths: List[Dict[str, str]] = []
    for idx, (path, data) in enumerate(files.items()):
        key = f"inlinefile{idx}"
        checksum = inline_checksum(data)
        inputs[key] = files_input([checksum])
        paths.append({"from": f"input://{key}/{checksum}", "to": f"tree://{path.lstrip('/')}"})
    return Stage(type="org.osbuild.copy", inputs=inputs, options={"paths": paths})
