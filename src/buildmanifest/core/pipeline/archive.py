# core/pipeline/archive.py
"""
Archive Pipeline
================

Packs the tree of another pipeline into a tar archive. This is an output
pipeline: it can be exported.
"""

from typing import Any, Dict, List, Optional

from buildmanifest.core.descriptors import Artifact

from .base import Pipeline, PipelineBase
from .stages import Stage, StageDescription, tree_input

__all__ = ["ArchivePipeline", "COMPRESSIONS"]

# compression -> (build package, mime type)
COMPRESSIONS = {
    None: (None, "application/x-tar"),
    "gzip": ("gzip", "application/gzip"),
    "xz": ("xz", "application/x-xz"),
    "zstd": ("zstd", "application/zstd"),
}


class ArchivePipeline(Pipeline):
    """
    Pipeline producing a tar archive of a tree.

    Args:
        manifest: Owning manifest
        name: Pipeline name
        build: Build root pipeline
        tree: Pipeline whose tree is archived
        filename: Name of the archive file
        compression: One of None, "gzip", "xz", "zstd"
    """

    kind = "archive"

    def __init__(
        self,
        manifest,
        name: str,
        build: Optional[Pipeline],
        tree: Pipeline,
        filename: str = "image.tar",
        compression: Optional[str] = None,
    ):
        if not filename:
            raise ValueError("Archive filename must be a non-empty string")
        if compression not in COMPRESSIONS:
            raise ValueError(f"Unsupported compression: {compression}")
        PipelineBase.require_member(manifest, tree, role="tree")
        self.tree_name = tree.name
        self.filename = filename
        self.compression = compression
        super().__init__(manifest, name, build)

    def export(self) -> Artifact:
        self.base.mark_export()
        return Artifact(
            pipeline=self.name,
            filename=self.filename,
            mime_type=COMPRESSIONS[self.compression][1],
        )

    def get_build_packages(self) -> List[str]:
        packages = ["tar"]
        package = COMPRESSIONS[self.compression][0]
        if package:
            packages.append(package)
        return packages

    def serialize(self) -> StageDescription:
        description = super().serialize()
        options: Dict[str, Any] = {"filename": self.filename}
        if self.compression:
            options["compression"] = self.compression
        description.add_stage(
            Stage("org.osbuild.tar", inputs={"tree": tree_input(self.tree_name)}, options=options)
        )
        return description
