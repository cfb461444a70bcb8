# core/pipeline/os_tree.py
"""
OS Tree Pipeline
================

The pipeline producing the operating system tree of an image. It is the
top-level tree other pipelines (archives, commits) take as input, and it
exposes the Tree capability: its name, manifest and target platform.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from buildmanifest.core.descriptors import ContainerSpec, PackageSet, Platform, Repository

from .base import Pipeline
from .build import gpg_keys_for
from .stages import Stage, StageDescription, inline_files_stage, rpm_stage

__all__ = ["OSCustomizations", "OSPipeline"]

CONTAINER_STORAGE_PATH = "/usr/share/containers/storage"


@dataclass
class OSCustomizations:
    """
    Static content of an OS tree.

    Attributes:
        packages: Packages to install on top of the platform packages
        exclude_packages: Packages that must not be installed
        extra_package_sets: Further package sets, resolved and installed
            after the base set, in order
        hostname: Hostname of the system
        timezone: Timezone (e.g., "UTC")
        locale: System locale (e.g., "en_US.UTF-8")
        files: Absolute path -> inline file content
        containers: Container images embedded into the tree
    """

    packages: List[str] = field(default_factory=list)
    exclude_packages: List[str] = field(default_factory=list)
    extra_package_sets: List[List[str]] = field(default_factory=list)
    hostname: Optional[str] = None
    timezone: Optional[str] = None
    locale: Optional[str] = None
    files: Dict[str, str] = field(default_factory=dict)
    containers: List[ContainerSpec] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OSCustomizations":
        """Create from dictionary."""
        return cls(
            packages=list(data.get("packages", [])),
            exclude_packages=list(data.get("exclude_packages", [])),
            extra_package_sets=[list(s) for s in data.get("extra_package_sets", [])],
            hostname=data.get("hostname"),
            timezone=data.get("timezone"),
            locale=data.get("locale"),
            files=dict(data.get("files", {})),
            containers=[ContainerSpec.from_dict(c) for c in data.get("containers", [])],
        )


class OSPipeline(Pipeline):
    """
    Pipeline producing an OS tree for a given platform.

    Args:
        manifest: Owning manifest
        name: Pipeline name, "os" by convention
        build: Build root pipeline
        platform: Platform the tree targets
        repositories: Repositories to resolve the tree packages against
        customizations: Static content of the tree
    """

    kind = "os"

    def __init__(
        self,
        manifest,
        name: str,
        build: Optional[Pipeline],
        platform: Platform,
        repositories: Sequence[Repository] = (),
        customizations: Optional[OSCustomizations] = None,
    ):
        for path in (customizations.files if customizations else {}):
            if not path.startswith("/"):
                raise ValueError(f"Inline file path must be absolute: {path}")
        self._platform = platform
        self.repositories = tuple(repositories)
        self.customizations = customizations or OSCustomizations()
        super().__init__(manifest, name, build)

    @property
    def platform(self) -> Platform:
        return self._platform

    def get_build_packages(self) -> List[str]:
        packages = ["rpm"]
        for package in self._platform.build_packages:
            if package not in packages:
                packages.append(package)
        if self.customizations.containers:
            packages.append("skopeo")
        return packages

    def get_package_set_chain(self) -> List[PackageSet]:
        c = self.customizations
        chain = [
            PackageSet(
                include=tuple(self._platform.packages) + tuple(c.packages),
                exclude=tuple(c.exclude_packages),
                repositories=self.repositories,
            )
        ]
        for extra in c.extra_package_sets:
            chain.append(PackageSet(include=tuple(extra), repositories=self.repositories))
        return chain

    def get_container_specs(self) -> List[ContainerSpec]:
        return list(self.customizations.containers)

    def get_inline(self) -> List[str]:
        return list(self.customizations.files.values())

    def serialize(self) -> StageDescription:
        description = super().serialize()
        c = self.customizations

        description.add_stage(rpm_stage(self.get_package_specs(), gpg_keys_for(self.repositories)))
        if c.locale:
            description.add_stage(Stage("org.osbuild.locale", options={"language": c.locale}))
        if c.hostname:
            description.add_stage(Stage("org.osbuild.hostname", options={"hostname": c.hostname}))
        if c.timezone:
            description.add_stage(Stage("org.osbuild.timezone", options={"zone": c.timezone}))
        if c.files:
            description.add_stage(inline_files_stage(c.files))
        if c.containers:
            description.add_stage(_skopeo_stage(c.containers))
        return description


def _skopeo_stage(containers: Sequence[ContainerSpec]) -> Stage:
    return Stage(
        type="org.osbuild.skopeo",
        inputs={
            "images": {
                "type": "org.osbuild.containers",
                "origin": "org.osbuild.source",
                "references": {c.image_id: {"name": c.name} for c in containers},
            }
        },
        options={
            "destination": {
                "type": "containers-storage",
                "storage-path": CONTAINER_STORAGE_PATH,
            }
        },
    )
