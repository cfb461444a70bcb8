# core/pipeline/base.py
"""
Pipeline Contract
=================

A pipeline conceptually represents a named filesystem tree, optionally built
inside the tree of another pipeline (its build root). All inputs of a
pipeline are declared explicitly: other pipelines by name, external content
through the dependency accessors, and static parameters through the
constructor of a concrete pipeline kind.

This module provides:
- PipelineBase: shared state every pipeline owns (identity, build root,
  checkpoint/export flags, serialization lifecycle)
- Pipeline: the capability contract every concrete kind implements; it owns
  one PipelineBase and delegates to it
- Tree: narrow read-only view of a tree-producing pipeline
- SerializationState: the per-pass lifecycle states

Serialization happens in three phases that the owning Manifest calls exactly
once each, in order, for every pass:

    UNSERIALIZED --serialize_start--> STARTED --serialize--> SERIALIZED
         ^                                                        |
         +---------------------- serialize_end <------------------+

Any other call order raises InvariantViolationError. A Manifest abandons a
failed pass with PipelineBase.reset(), which returns a pipeline to
UNSERIALIZED from any phase.

Usage:
    from buildmanifest.core.manifest import Manifest
    from buildmanifest.core.pipeline import BuildPipeline, OSPipeline

    manifest = Manifest()
    build = BuildPipeline(manifest, "build", runner="org.osbuild.fedora39")
    os_tree = OSPipeline(manifest, "os", build, platform)
    os_tree.checkpoint()
"""

import weakref
from enum import Enum
from typing import TYPE_CHECKING, List, Optional, Protocol, Sequence, runtime_checkable

from buildmanifest.core.descriptors import (
    Artifact,
    CommitSpec,
    ContainerSpec,
    PackageSet,
    PackageSpec,
    Platform,
    flatten,
)
from buildmanifest.core.exceptions import InvariantViolationError, UnsupportedOperationError
from buildmanifest.core.logger import get_logger

from .stages import StageDescription, pipeline_ref

if TYPE_CHECKING:
    from buildmanifest.core.manifest.manifest import Manifest

logger = get_logger(__name__)

__all__ = [
    "SerializationState",
    "PipelineBase",
    "Pipeline",
    "Tree",
]


class SerializationState(Enum):
    """Position of a pipeline within one serialization pass."""

    UNSERIALIZED = "unserialized"
    STARTED = "started"
    SERIALIZED = "serialized"


class PipelineBase:
    """
    State shared by every pipeline implementation.

    The manifest is held through a weak reference and the build root by name
    only: the Manifest owns every pipeline, and a build root is usually
    shared by many dependents. The build root must be a pipeline kind that
    provides one (``provides_build_root``), so the build packages of its
    dependents end up installed in it.

    Attributes:
        name: Pipeline name, immutable and unique within the manifest
        build_name: Name of the build root pipeline, or None for the host
        state: Current serialization lifecycle state
    """

    def __init__(
        self,
        manifest: "Manifest",
        name: str,
        build: Optional["Pipeline"] = None,
    ):
        if not isinstance(name, str) or not name.strip():
            raise InvariantViolationError("Pipeline name must be a non-empty string")
        if build is not None:
            self.require_member(manifest, build, role="build")
            if not build.provides_build_root:
                raise InvariantViolationError(
                    f"Pipeline '{name}' cannot use '{build.name}' as build root: "
                    f"'{build.kind}' pipelines do not provide a build root"
                )

        self._manifest_ref = weakref.ref(manifest)
        self._name = name
        self._build_name = build.name if build is not None else None
        self._checkpoint = False
        self._export = False
        self._state = SerializationState.UNSERIALIZED
        self._package_sets: Optional[List[List[PackageSpec]]] = None

    @staticmethod
    def require_member(manifest: "Manifest", pipeline: "Pipeline", role: str) -> None:
        """Fail unless ``pipeline`` belongs to ``manifest``."""
        if pipeline.manifest is not manifest:
            raise InvariantViolationError(
                f"{role} pipeline '{pipeline.name}' belongs to a different manifest"
            )

    @property
    def name(self) -> str:
        return self._name

    @property
    def manifest(self) -> "Manifest":
        manifest = self._manifest_ref()
        if manifest is None:
            raise InvariantViolationError(f"Pipeline '{self._name}' outlived its manifest")
        return manifest

    @property
    def build_name(self) -> Optional[str]:
        return self._build_name

    @property
    def state(self) -> SerializationState:
        return self._state

    # Flags only ever go from False to True.

    def checkpoint(self) -> None:
        self._checkpoint = True

    def mark_export(self) -> None:
        self._export = True

    def get_checkpoint(self) -> bool:
        return self._checkpoint

    def get_export(self) -> bool:
        return self._export

    def export(self) -> Artifact:
        raise UnsupportedOperationError("export", self._name)

    # Empty dependency declarations. Always fresh lists, never None.

    def get_build_packages(self) -> List[str]:
        return []

    def get_package_set_chain(self) -> List[PackageSet]:
        return []

    def get_package_specs(self) -> List[PackageSpec]:
        if self._package_sets is None:
            return []
        return flatten(self._package_sets)

    def get_ostree_commits(self) -> List[CommitSpec]:
        return []

    def get_container_specs(self) -> List[ContainerSpec]:
        return []

    def get_inline(self) -> List[str]:
        return []

    @property
    def resolved_package_sets(self) -> List[List[PackageSpec]]:
        """Resolved specs injected for the current pass, one list per declared set."""
        if self._package_sets is None:
            return []
        return [list(specs) for specs in self._package_sets]

    def _expect_state(self, expected: SerializationState, phase: str) -> None:
        if self._state is not expected:
            raise InvariantViolationError(
                f"Pipeline '{self._name}': {phase}() called in state "
                f"'{self._state.value}', expected '{expected.value}'"
            )

    def serialize_start(
        self,
        package_sets: Sequence[Sequence[PackageSpec]],
        declared_sets: int,
    ) -> None:
        """
        Inject resolved package specs for this pass.

        Args:
            package_sets: One resolved list per declared package set, in the
                order the pipeline declared them
            declared_sets: Length of the pipeline's own package set chain
        """
        self._expect_state(SerializationState.UNSERIALIZED, "serialize_start")
        if len(package_sets) != declared_sets:
            raise InvariantViolationError(
                f"Pipeline '{self._name}' declared {declared_sets} package set(s) "
                f"but received {len(package_sets)} resolved set(s)"
            )
        self._package_sets = [list(specs) for specs in package_sets]
        self._state = SerializationState.STARTED

    def serialize(self) -> StageDescription:
        self._expect_state(SerializationState.STARTED, "serialize")
        self._state = SerializationState.SERIALIZED
        description = StageDescription(name=self._name)
        if self._build_name is not None:
            description.build = pipeline_ref(self._build_name)
        return description

    def serialize_end(self) -> None:
        self._expect_state(SerializationState.SERIALIZED, "serialize_end")
        self.reset()

    def reset(self) -> None:
        """Abandon the current pass, whatever phase it reached."""
        self._package_sets = None
        self._state = SerializationState.UNSERIALIZED


class Pipeline:
    """
    Capability contract of every stage-producing pipeline.

    Concrete kinds subclass Pipeline and override only the accessors relevant
    to them; every default body lives in the owned PipelineBase. Constructing
    a pipeline registers it with its manifest, and with its build root as a
    dependent.

    The ``get_*`` accessors and the ``serialize*`` phases are consumed by the
    owning Manifest, not by end users.
    """

    kind: str = "pipeline"
    # Only pipelines that fold their dependents' build packages into their
    # own package set chain can serve as build roots.
    provides_build_root: bool = False

    def __init__(
        self,
        manifest: "Manifest",
        name: str,
        build: Optional["Pipeline"] = None,
    ):
        self.base = PipelineBase(manifest, name, build)
        manifest.add_pipeline(self)
        if build is not None:
            build.add_dependent(self)

    def __repr__(self) -> str:
        build = f", build={self.base.build_name!r}" if self.base.build_name else ""
        return f"{type(self).__name__}(name={self.name!r}{build})"

    @property
    def name(self) -> str:
        """
        Name of the pipeline.

        Pipelines refer to each other by name, both for build roots and for
        tree inputs, and exported pipelines are selected by name.
        """
        return self.base.name

    @property
    def manifest(self) -> "Manifest":
        return self.base.manifest

    @property
    def build(self) -> Optional["Pipeline"]:
        """Build root pipeline, looked up by name in the owning manifest."""
        if self.base.build_name is None:
            return None
        return self.manifest.get_pipeline(self.base.build_name)

    @property
    def state(self) -> SerializationState:
        return self.base.state

    def checkpoint(self) -> None:
        """Mark the output of this pipeline as cacheable across builds."""
        self.base.checkpoint()

    def export(self) -> Artifact:
        """Mark this pipeline for export and return a handle to its output."""
        return self.base.export()

    def get_checkpoint(self) -> bool:
        return self.base.get_checkpoint()

    def get_export(self) -> bool:
        return self.base.get_export()

    def add_dependent(self, pipeline: "Pipeline") -> None:
        """Called when ``pipeline`` is constructed with this one as its build root."""

    def get_build_packages(self) -> List[str]:
        """Packages this pipeline needs installed in its build root."""
        return self.base.get_build_packages()

    def get_package_set_chain(self) -> List[PackageSet]:
        """Package sets to resolve, in order, for this pipeline."""
        return self.base.get_package_set_chain()

    def get_package_specs(self) -> List[PackageSpec]:
        """All resolved specs of the current pass, in chain order."""
        return self.base.get_package_specs()

    def get_ostree_commits(self) -> List[CommitSpec]:
        return self.base.get_ostree_commits()

    def get_container_specs(self) -> List[ContainerSpec]:
        return self.base.get_container_specs()

    def get_inline(self) -> List[str]:
        return self.base.get_inline()

    def get_resolved_package_sets(self) -> List[List[PackageSpec]]:
        """Resolved specs of the current pass, positionally matching the chain."""
        return self.base.resolved_package_sets

    def serialize_start(self, package_sets: Sequence[Sequence[PackageSpec]]) -> None:
        """
        First phase of a serialization pass.

        Args:
            package_sets: The i-th entry holds the resolved specs of the i-th
                set returned by get_package_set_chain()
        """
        self.base.serialize_start(package_sets, len(self.get_package_set_chain()))
        logger.debug(f"Started serialization of pipeline {self.name}")

    def serialize(self) -> StageDescription:
        """
        Turn the pipeline into a stage description.

        The returned object is meant to be treated as opaque outside of the
        pipeline package.
        """
        return self.base.serialize()

    def serialize_end(self) -> None:
        """Last phase of a serialization pass; drops the injected specs."""
        self.base.serialize_end()


@runtime_checkable
class Tree(Protocol):
    """Read-only view of a top-level, tree-producing pipeline."""

    @property
    def name(self) -> str:
        ...

    @property
    def manifest(self) -> "Manifest":
        ...

    @property
    def platform(self) -> Platform:
        ...
