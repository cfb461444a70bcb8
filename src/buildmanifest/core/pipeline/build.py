# core/pipeline/build.py
"""
Build Root Pipeline
===================

A build pipeline produces the environment other pipelines are built in.
It is normally the only pipeline without a build root of its own, in which
case the host filesystem is used and osbuild detects the runner itself.

The packages installed into the build root are its own base packages plus
the build packages declared by every pipeline that names it as build root.
"""

from typing import List, Optional, Sequence

from buildmanifest.core.descriptors import PackageSet, Repository

from .base import Pipeline
from .stages import StageDescription, rpm_stage

__all__ = ["BuildPipeline", "DEFAULT_RUNNER", "gpg_keys_for"]

DEFAULT_RUNNER = "org.osbuild.linux"


def gpg_keys_for(repositories: Sequence[Repository]) -> List[str]:
    """GPG keys of the repositories that require signature checks."""
    keys: List[str] = []
    for repo in repositories:
        if not repo.check_gpg:
            continue
        for key in repo.gpg_keys:
            if key not in keys:
                keys.append(key)
    return keys


class BuildPipeline(Pipeline):
    """
    Pipeline providing a build root.

    Args:
        manifest: Owning manifest
        name: Pipeline name, "build" by convention
        runner: Runner naming the distribution inside this build root
        repositories: Repositories to resolve the build root packages against
        packages: Base packages of the build root
        build: Optional build root of the build root itself
    """

    kind = "build"
    provides_build_root = True

    def __init__(
        self,
        manifest,
        name: str = "build",
        runner: str = DEFAULT_RUNNER,
        repositories: Sequence[Repository] = (),
        packages: Sequence[str] = (),
        build: Optional[Pipeline] = None,
    ):
        if not runner:
            raise ValueError("Build pipeline runner must be a non-empty string")
        self.runner = runner
        self.repositories = tuple(repositories)
        self.packages = list(packages)
        self._dependents: List[str] = []
        super().__init__(manifest, name, build)

    @property
    def dependents(self) -> List[str]:
        """Names of the pipelines built inside this build root."""
        return list(self._dependents)

    def add_dependent(self, pipeline: Pipeline) -> None:
        self._dependents.append(pipeline.name)

    def get_package_set_chain(self) -> List[PackageSet]:
        include = list(self.packages)
        for name in self._dependents:
            for package in self.manifest.get_pipeline(name).get_build_packages():
                if package not in include:
                    include.append(package)
        return [PackageSet(include=tuple(include), repositories=self.repositories)]

    def serialize(self) -> StageDescription:
        description = super().serialize()
        description.runner = self.runner
        description.add_stage(rpm_stage(self.get_package_specs(), gpg_keys_for(self.repositories)))
        return description
