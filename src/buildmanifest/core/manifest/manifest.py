# core/manifest/manifest.py
"""
Manifest
========

Registry and owner of all pipelines of one build.

Pipelines register themselves on construction. Since a pipeline can only
reference pipelines that already exist (its build root, its tree inputs),
registration order is a valid dependency order, and it is the order the
manifest serializes in.

A full round trip:

    manifest = Manifest()
    build = BuildPipeline(manifest, "build")
    os_tree = OSPipeline(manifest, "os", build, platform)

    chains = manifest.get_package_set_chains()   # hand to a resolver
    resolved = resolver.depsolve(chains)         # name -> [[PackageSpec]]
    document = manifest.serialize(resolved)
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence

from buildmanifest.core.descriptors import (
    CommitSpec,
    ContainerSpec,
    PackageSet,
    PackageSpec,
)
from buildmanifest.core.exceptions import InvariantViolationError
from buildmanifest.core.logger import get_logger
from buildmanifest.core.pipeline.base import Pipeline

from .sources import generate_sources

logger = get_logger(__name__)

__all__ = ["MANIFEST_VERSION", "Manifest", "PipelineDependencies"]

MANIFEST_VERSION = "2"


@dataclass
class PipelineDependencies:
    """External content declared by one pipeline."""

    build_packages: List[str] = field(default_factory=list)
    package_set_chain: List[PackageSet] = field(default_factory=list)
    ostree_commits: List[CommitSpec] = field(default_factory=list)
    container_specs: List[ContainerSpec] = field(default_factory=list)
    inline: List[str] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not (
            self.build_packages
            or self.package_set_chain
            or self.ostree_commits
            or self.container_specs
            or self.inline
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "build_packages": list(self.build_packages),
            "package_set_chain": [s.to_dict() for s in self.package_set_chain],
            "ostree_commits": [c.to_dict() for c in self.ostree_commits],
            "container_specs": [c.to_dict() for c in self.container_specs],
            "inline": list(self.inline),
        }


class Manifest:
    """
    Owner of every pipeline of one build.

    Attributes:
        name: Optional label used in logs and CLI output
    """

    def __init__(self, name: str = ""):
        self.name = name
        self._pipelines: Dict[str, Pipeline] = {}

    def __repr__(self) -> str:
        return f"Manifest(name={self.name!r}, pipelines={self.pipeline_names})"

    def __len__(self) -> int:
        return len(self._pipelines)

    def __iter__(self) -> Iterator[Pipeline]:
        return iter(list(self._pipelines.values()))

    def __contains__(self, name: object) -> bool:
        return name in self._pipelines

    def add_pipeline(self, pipeline: Pipeline) -> None:
        """
        Register a pipeline. Called by the pipeline constructor.

        Raises:
            InvariantViolationError: If the pipeline belongs to another
                manifest or its name is already taken
        """
        if pipeline.manifest is not self:
            raise InvariantViolationError(
                f"Pipeline '{pipeline.name}' belongs to a different manifest"
            )
        if pipeline.name in self._pipelines:
            raise InvariantViolationError(f"Duplicate pipeline name: '{pipeline.name}'")
        self._pipelines[pipeline.name] = pipeline
        logger.debug(f"Registered {pipeline.kind} pipeline {pipeline.name}")

    def get_pipeline(self, name: str) -> Pipeline:
        """Look up a pipeline by name."""
        pipeline = self._pipelines.get(name)
        if pipeline is None:
            raise KeyError(f"Unknown pipeline: '{name}'")
        return pipeline

    @property
    def pipelines(self) -> List[Pipeline]:
        return list(self._pipelines.values())

    @property
    def pipeline_names(self) -> List[str]:
        return list(self._pipelines.keys())

    def get_checkpoints(self) -> List[str]:
        """Names of the pipelines whose output may be cached."""
        return [p.name for p in self._pipelines.values() if p.get_checkpoint()]

    def get_exports(self) -> List[str]:
        """Names of the pipelines marked for export."""
        return [p.name for p in self._pipelines.values() if p.get_export()]

    def get_dependencies(self) -> Dict[str, PipelineDependencies]:
        """
        Collect the dependency declarations of every pipeline.

        Returns:
            Pipeline name -> declarations, in registration order
        """
        return {
            p.name: PipelineDependencies(
                build_packages=p.get_build_packages(),
                package_set_chain=p.get_package_set_chain(),
                ostree_commits=p.get_ostree_commits(),
                container_specs=p.get_container_specs(),
                inline=p.get_inline(),
            )
            for p in self._pipelines.values()
        }

    def get_package_set_chains(self) -> Dict[str, List[PackageSet]]:
        """Package set chains to resolve, for pipelines that declare one."""
        chains = {}
        for pipeline in self._pipelines.values():
            chain = pipeline.get_package_set_chain()
            if chain:
                chains[pipeline.name] = chain
        return chains

    def get_ostree_commits(self) -> List[CommitSpec]:
        return [c for p in self._pipelines.values() for c in p.get_ostree_commits()]

    def get_container_specs(self) -> List[ContainerSpec]:
        return [c for p in self._pipelines.values() for c in p.get_container_specs()]

    def get_inline(self) -> List[str]:
        return [data for p in self._pipelines.values() for data in p.get_inline()]

    def serialize(
        self,
        package_sets: Optional[Mapping[str, Sequence[Sequence[PackageSpec]]]] = None,
    ) -> Dict[str, Any]:
        """
        Serialize every pipeline into a manifest document.

        Args:
            package_sets: Pipeline name -> resolved specs, one list per set
                of that pipeline's package set chain, in the same order.
                Pipelines without a chain may be left out.

        Returns:
            Dictionary with "version", "pipelines" and, when any external
            content is referenced, "sources"
        """
        package_sets = package_sets or {}
        unknown = [name for name in package_sets if name not in self._pipelines]
        if unknown:
            raise InvariantViolationError(
                f"Resolved package sets given for unknown pipelines: {unknown}"
            )

        pipelines = self.pipelines
        misaligned = [
            f"{p.name} (declared {len(p.get_package_set_chain())}, "
            f"received {len(package_sets.get(p.name, []))})"
            for p in pipelines
            if len(p.get_package_set_chain()) != len(package_sets.get(p.name, []))
        ]
        if misaligned:
            raise InvariantViolationError(
                f"Resolved package sets do not match the package set chains of: "
                f"{', '.join(misaligned)}"
            )

        packages: List[PackageSpec] = []
        commits: List[CommitSpec] = []
        inline: List[str] = []
        containers: List[ContainerSpec] = []
        try:
            for pipeline in pipelines:
                pipeline.serialize_start(package_sets.get(pipeline.name, []))

            descriptions = [pipeline.serialize().to_dict() for pipeline in pipelines]

            for pipeline in pipelines:
                packages.extend(pipeline.get_package_specs())
                commits.extend(pipeline.get_ostree_commits())
                inline.extend(pipeline.get_inline())
                containers.extend(pipeline.get_container_specs())

            for pipeline in pipelines:
                pipeline.serialize_end()
        except Exception:
            for pipeline in pipelines:
                pipeline.base.reset()
            raise

        document: Dict[str, Any] = {
            "version": MANIFEST_VERSION,
            "pipelines": descriptions,
        }
        sources = generate_sources(packages, commits, inline, containers)
        if sources:
            document["sources"] = sources

        logger.debug(f"Serialized {len(pipelines)} pipeline(s) of manifest {self.name}")
        return document
