"""
buildmanifest - Build Manifests for Filesystem Trees
====================================================

Version: 0.1.0
"""

__version__ = "0.1.0"

from buildmanifest.core.descriptors import (
    Artifact,
    CommitSpec,
    ContainerSpec,
    PackageSet,
    PackageSpec,
    Platform,
    Repository,
)
from buildmanifest.core.exceptions import (
    BuildManifestError,
    ConfigError,
    DefinitionError,
    InvariantViolationError,
    UnsupportedOperationError,
)
from buildmanifest.core.manifest import Manifest
from buildmanifest.core.pipeline import (
    ArchivePipeline,
    BuildPipeline,
    OSCustomizations,
    OSPipeline,
    OSTreeCommitPipeline,
    Pipeline,
    StageDescription,
    Tree,
)

__all__ = [
    "__version__",
    # Descriptors
    "Artifact",
    "CommitSpec",
    "ContainerSpec",
    "PackageSet",
    "PackageSpec",
    "Platform",
    "Repository",
    # Errors
    "BuildManifestError",
    "ConfigError",
    "DefinitionError",
    "InvariantViolationError",
    "UnsupportedOperationError",
    # Manifest and pipelines
    "Manifest",
    "Pipeline",
    "Tree",
    "StageDescription",
    "BuildPipeline",
    "OSPipeline",
    "OSCustomizations",
    "OSTreeCommitPipeline",
    "ArchivePipeline",
]
