# core/pipeline/ostree.py
"""
OSTree Commit Pipeline
======================

Commits the tree of another pipeline into an OSTree repository, optionally
on top of a parent commit pulled from a remote.
"""

from typing import Any, Dict, List, Optional

from buildmanifest.core.descriptors import CommitSpec

from .base import Pipeline, PipelineBase
from .stages import Stage, StageDescription, tree_input

__all__ = ["OSTreeCommitPipeline"]

REPO_PATH = "/repo"


class OSTreeCommitPipeline(Pipeline):
    """
    Pipeline producing an OSTree repository with a single commit.

    Args:
        manifest: Owning manifest
        name: Pipeline name
        build: Build root pipeline
        tree: Pipeline whose tree is committed
        ref: Branch the commit is made on
        os_version: Version recorded in the commit metadata
        parent: Commit the new commit is based on
    """

    kind = "ostree-commit"

    def __init__(
        self,
        manifest,
        name: str,
        build: Optional[Pipeline],
        tree: Pipeline,
        ref: str,
        os_version: Optional[str] = None,
        parent: Optional[CommitSpec] = None,
    ):
        if not ref:
            raise ValueError("OSTree ref must be a non-empty string")
        PipelineBase.require_member(manifest, tree, role="tree")
        self.tree_name = tree.name
        self.ref = ref
        self.os_version = os_version
        self.parent = parent
        super().__init__(manifest, name, build)

    def get_build_packages(self) -> List[str]:
        return ["rpm-ostree"]

    def get_ostree_commits(self) -> List[CommitSpec]:
        if self.parent is None:
            return []
        return [self.parent]

    def serialize(self) -> StageDescription:
        description = super().serialize()
        description.add_stage(Stage("org.osbuild.ostree.init", options={"path": REPO_PATH}))

        options: Dict[str, Any] = {"ref": self.ref}
        if self.os_version:
            options["os_version"] = self.os_version
        if self.parent is not None:
            options["parent"] = self.parent.checksum
        description.add_stage(
            Stage(
                "org.osbuild.ostree.commit",
                inputs={"tree": tree_input(self.tree_name)},
                options=options,
            )
        )
        return description
