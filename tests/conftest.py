# tests/conftest.py
"""
Global pytest fixtures for buildmanifest tests.
"""

import pytest

from buildmanifest.core.config import set_config
from buildmanifest.core.descriptors import PackageSet, PackageSpec, Platform, Repository
from buildmanifest.core.manifest import Manifest
from buildmanifest.core.pipeline import Pipeline


class StubPipeline(Pipeline):
    """Pipeline with configurable declarations and no stages of its own."""

    kind = "stub"

    def __init__(self, manifest, name, build=None, chain=(), build_packages=()):
        self.chain = list(chain)
        self.build_packages = list(build_packages)
        super().__init__(manifest, name, build)

    def get_package_set_chain(self):
        return list(self.chain)

    def get_build_packages(self):
        return list(self.build_packages)


class StubBuildRoot(StubPipeline):
    """StubPipeline that other pipelines may use as their build root."""

    kind = "stub-build"
    provides_build_root = True


@pytest.fixture(autouse=True)
def reset_config():
    """Make every test start from a freshly loaded configuration."""
    set_config(None)
    yield
    set_config(None)


@pytest.fixture
def temp_dir(tmp_path):
    """Provide a temporary directory."""
    return tmp_path


@pytest.fixture
def manifest():
    """An empty manifest."""
    return Manifest("test")


@pytest.fixture
def stub_pipeline():
    """The StubPipeline class."""
    return StubPipeline


@pytest.fixture
def stub_build_root():
    """The StubBuildRoot class."""
    return StubBuildRoot


@pytest.fixture
def platform():
    """An x86_64 platform with BIOS and UEFI support."""
    return Platform(
        arch="x86_64",
        bios_platform="i386-pc",
        uefi_vendor="fedora",
        packages=("kernel",),
        build_packages=("grub2-pc",),
    )


@pytest.fixture
def repositories():
    """A signed and an unsigned repository."""
    return [
        Repository(
            id="fedora",
            baseurl="https://dl.example.com/fedora/39/",
            gpg_keys=("-----BEGIN PGP PUBLIC KEY BLOCK-----fedora",),
        ),
        Repository(
            id="local",
            baseurl="file:///srv/repo",
            gpg_keys=("-----BEGIN PGP PUBLIC KEY BLOCK-----local",),
            check_gpg=False,
        ),
    ]


@pytest.fixture
def make_spec():
    """Factory for resolved package specs."""

    def _make(name, checksum=None, **kwargs):
        values = {
            "version": "1.0",
            "release": "1.fc39",
            "arch": "x86_64",
            "remote_location": f"https://dl.example.com/packages/{name}.rpm",
        }
        values.update(kwargs)
        return PackageSpec(name=name, checksum=checksum or f"sha256:{name}", **values)

    return _make


@pytest.fixture
def two_set_chain():
    """A package set chain of two sets."""
    return [PackageSet(include=("bash",)), PackageSet(include=("vim",))]


@pytest.fixture
def definition_toml():
    """A complete manifest definition."""
    return """
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
baseurl = "https://dl.example.com/fedora/{{ release }}/"

[[pipelines]]
name = "build"
kind = "build"
options = { runner = "org.osbuild.fedora{{ release }}", packages = ["dnf"] }

[[pipelines]]
name = "os"
kind = "os"
build = "build"
checkpoint = true
options = { packages = ["@core"], hostname = "fedora", files = { "/etc/motd" = "hello" } }

[[pipelines]]
name = "archive"
kind = "archive"
build = "build"
tree = "os"
export = true
options = { filename = "fedora.tar.xz", compression = "xz" }
"""


@pytest.fixture
def definition_file(temp_dir, definition_toml):
    """The complete manifest definition written to disk."""
    path = temp_dir / "fedora.toml"
    path.write_text(definition_toml)
    return path
