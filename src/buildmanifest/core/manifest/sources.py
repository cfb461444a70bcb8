# core/manifest/sources.py
"""
Manifest Sources
================

Builds the ``sources`` section of a manifest: every piece of external
content the pipelines reference by checksum, keyed by the source type the
engine fetches it with.

Example output:

    {
        "org.osbuild.curl": {"items": {"sha256:...": {"url": "https://..."}}},
        "org.osbuild.inline": {"items": {"sha256:...": {"encoding": "base64", "data": "..."}}},
    }
"""

import base64
from typing import Any, Dict, Sequence

from buildmanifest.core.descriptors import CommitSpec, ContainerSpec, PackageSpec
from buildmanifest.core.pipeline.stages import inline_checksum

__all__ = ["generate_sources"]


def generate_sources(
    packages: Sequence[PackageSpec] = (),
    commits: Sequence[CommitSpec] = (),
    inline: Sequence[str] = (),
    containers: Sequence[ContainerSpec] = (),
) -> Dict[str, Any]:
    """
    Generate the sources section for the given content.

    Duplicate content collapses onto one item since items are keyed by
    checksum. Source types without content are left out.

    Args:
        packages: Resolved packages of all pipelines
        commits: OSTree commits of all pipelines
        inline: Inline blobs of all pipelines
        containers: Container images of all pipelines

    Returns:
        Dictionary mapping source type to its items
    """
    sources: Dict[str, Any] = {}

    if packages:
        items = {}
        for package in packages:
            items[package.checksum] = {"url": package.remote_location}
        sources["org.osbuild.curl"] = {"items": items}

    if commits:
        items = {}
        for commit in commits:
            items[commit.checksum] = {"remote": {"url": commit.url}}
        sources["org.osbuild.ostree"] = {"items": items}

    if inline:
        items = {}
        for data in inline:
            items[inline_checksum(data)] = {
                "encoding": "base64",
                "data": base64.b64encode(data.encode("utf-8")).decode("ascii"),
            }
        sources["org.osbuild.inline"] = {"items": items}

    if containers:
        items = {}
        for container in containers:
            items[container.image_id] = {
                "image": {
                    "name": container.source,
                    "digest": container.digest,
                    "tls-verify": container.tls_verify,
                }
            }
        sources["org.osbuild.skopeo"] = {"items": items}

    return sources
