# core/descriptors.py
"""
Dependency Descriptors
======================

Value types a pipeline uses to declare, and later consume, external content.

Pipelines never interpret these beyond storing, forwarding and reporting them:

- PackageSet: a package constraint set (include/exclude + repositories) to be
  resolved externally
- PackageSpec: one resolved package, handed back before serialization
- CommitSpec: an OSTree commit reference
- ContainerSpec: a container image reference
- Artifact: handle to exported content
- Platform: architecture and firmware capabilities of a tree

Inline content blobs are plain strings.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

__all__ = [
    "Repository",
    "PackageSet",
    "PackageSpec",
    "CommitSpec",
    "ContainerSpec",
    "Artifact",
    "Platform",
]


@dataclass(frozen=True)
class Repository:
    """A package repository a package set may be resolved against."""

    id: str
    baseurl: Optional[str] = None
    metalink: Optional[str] = None
    gpg_keys: Tuple[str, ...] = ()
    check_gpg: bool = True

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        d: Dict[str, Any] = {"id": self.id, "check_gpg": self.check_gpg}
        if self.baseurl:
            d["baseurl"] = self.baseurl
        if self.metalink:
            d["metalink"] = self.metalink
        if self.gpg_keys:
            d["gpg_keys"] = list(self.gpg_keys)
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Repository":
        """Create from dictionary."""
        return cls(
            id=data["id"],
            baseurl=data.get("baseurl"),
            metalink=data.get("metalink"),
            gpg_keys=tuple(data.get("gpg_keys", ())),
            check_gpg=data.get("check_gpg", True),
        )


@dataclass(frozen=True)
class PackageSet:
    """
    A set of package constraints to be resolved into concrete packages.

    Attributes:
        include: Package names that must be installed
        exclude: Package names that must not be installed
        repositories: Repositories the set is resolved against
    """

    include: Tuple[str, ...] = ()
    exclude: Tuple[str, ...] = ()
    repositories: Tuple[Repository, ...] = ()

    def append(self, other: "PackageSet") -> "PackageSet":
        """Return a new set with the constraints of ``other`` added."""
        return PackageSet(
            include=self.include + other.include,
            exclude=self.exclude + other.exclude,
            repositories=self.repositories + tuple(
                r for r in other.repositories if r not in self.repositories
            ),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "include": list(self.include),
            "exclude": list(self.exclude),
            "repositories": [r.to_dict() for r in self.repositories],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PackageSet":
        """Create from dictionary."""
        return cls(
            include=tuple(data.get("include", ())),
            exclude=tuple(data.get("exclude", ())),
            repositories=tuple(Repository.from_dict(r) for r in data.get("repositories", ())),
        )


@dataclass(frozen=True)
class PackageSpec:
    """A single resolved package."""

    name: str
    version: str
    release: str
    arch: str
    checksum: str
    remote_location: str
    epoch: int = 0
    check_gpg: bool = False

    @property
    def nevra(self) -> str:
        """Name-epoch:version-release.arch, with the epoch omitted when zero."""
        evr = f"{self.version}-{self.release}"
        if self.epoch:
            evr = f"{self.epoch}:{evr}"
        return f"{self.name}-{evr}.{self.arch}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "name": self.name,
            "epoch": self.epoch,
            "version": self.version,
            "release": self.release,
            "arch": self.arch,
            "checksum": self.checksum,
            "remote_location": self.remote_location,
            "check_gpg": self.check_gpg,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PackageSpec":
        """Create from dictionary."""
        return cls(
            name=data["name"],
            epoch=int(data.get("epoch", 0)),
            version=data["version"],
            release=data["release"],
            arch=data["arch"],
            checksum=data["checksum"],
            remote_location=data["remote_location"],
            check_gpg=data.get("check_gpg", False),
        )


@dataclass(frozen=True)
class CommitSpec:
    """An OSTree commit to pull from a remote repository."""

    ref: str
    url: str
    checksum: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {"ref": self.ref, "url": self.url, "checksum": self.checksum}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CommitSpec":
        """Create from dictionary."""
        return cls(ref=data["ref"], url=data["url"], checksum=data["checksum"])


@dataclass(frozen=True)
class ContainerSpec:
    """A container image to embed into a tree."""

    source: str
    digest: str
    image_id: str
    local_name: Optional[str] = None
    tls_verify: bool = True

    @property
    def name(self) -> str:
        """Name the image is stored under inside the tree."""
        return self.local_name or self.source

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        d: Dict[str, Any] = {
            "source": self.source,
            "digest": self.digest,
            "image_id": self.image_id,
            "tls_verify": self.tls_verify,
        }
        if self.local_name:
            d["local_name"] = self.local_name
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ContainerSpec":
        """Create from dictionary."""
        return cls(
            source=data["source"],
            digest=data["digest"],
            image_id=data["image_id"],
            local_name=data.get("local_name"),
            tls_verify=data.get("tls_verify", True),
        )


@dataclass(frozen=True)
class Artifact:
    """Handle to the content a pipeline exports."""

    pipeline: str
    filename: str
    mime_type: str = "application/octet-stream"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {"pipeline": self.pipeline, "filename": self.filename, "mime_type": self.mime_type}


@dataclass(frozen=True)
class Platform:
    """
    Architecture and firmware capabilities a tree is built for.

    Attributes:
        arch: CPU architecture (e.g., "x86_64", "aarch64")
        bios_platform: BIOS bootloader platform, empty when BIOS boot is unsupported
        uefi_vendor: EFI vendor directory, empty when UEFI boot is unsupported
        image_format: Preferred disk image format
        packages: Packages the platform adds to the tree
        build_packages: Packages the platform needs in the build root
    """

    arch: str
    bios_platform: str = ""
    uefi_vendor: str = ""
    image_format: str = ""
    packages: Tuple[str, ...] = ()
    build_packages: Tuple[str, ...] = ()

    @property
    def supports_bios(self) -> bool:
        return bool(self.bios_platform)

    @property
    def supports_uefi(self) -> bool:
        return bool(self.uefi_vendor)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        d: Dict[str, Any] = {"arch": self.arch}
        if self.bios_platform:
            d["bios_platform"] = self.bios_platform
        if self.uefi_vendor:
            d["uefi_vendor"] = self.uefi_vendor
        if self.image_format:
            d["image_format"] = self.image_format
        if self.packages:
            d["packages"] = list(self.packages)
        if self.build_packages:
            d["build_packages"] = list(self.build_packages)
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Platform":
        """Create from dictionary."""
        return cls(
            arch=data["arch"],
            bios_platform=data.get("bios_platform", ""),
            uefi_vendor=data.get("uefi_vendor", ""),
            image_format=data.get("image_format", ""),
            packages=tuple(data.get("packages", ())),
            build_packages=tuple(data.get("build_packages", ())),
        )


def flatten(lists: List[List[Any]]) -> List[Any]:
    """Concatenate a list of lists, preserving order."""
    return [item for sub in lists for item in sub]
