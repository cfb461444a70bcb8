"""
Pipeline Package
================

Pipelines and the stage descriptions they serialize into.

This package provides:
- Pipeline: the capability contract of every pipeline kind
- PipelineBase: shared state composed into every pipeline
- Tree: read-only view of tree-producing pipelines
- BuildPipeline, OSPipeline, OSTreeCommitPipeline, ArchivePipeline:
  concrete pipeline kinds
- StageDescription, Stage: the serialized shapes
"""

from .archive import ArchivePipeline
from .base import Pipeline, PipelineBase, SerializationState, Tree
from .build import DEFAULT_RUNNER, BuildPipeline
from .os_tree import OSCustomizations, OSPipeline
from .ostree import OSTreeCommitPipeline
from .stages import NAME_PREFIX, Stage, StageDescription, pipeline_ref

PIPELINE_KINDS = {
    BuildPipeline.kind: BuildPipeline,
    OSPipeline.kind: OSPipeline,
    OSTreeCommitPipeline.kind: OSTreeCommitPipeline,
    ArchivePipeline.kind: ArchivePipeline,
}

__all__ = [
    # Contract
    "Pipeline",
    "PipelineBase",
    "SerializationState",
    "Tree",
    # Pipeline kinds
    "BuildPipeline",
    "OSPipeline",
    "OSCustomizations",
    "OSTreeCommitPipeline",
    "ArchivePipeline",
    "PIPELINE_KINDS",
    "DEFAULT_RUNNER",
    # Stage descriptions
    "Stage",
    "StageDescription",
    "NAME_PREFIX",
    "pipeline_ref",
]
