# core/definition/builder.py
"""
Manifest Builder
================

Instantiates the pipelines of a manifest definition into a Manifest.

Pipelines are constructed in dependency order so every build root and tree
input exists before the pipeline naming it. Checkpoint and export flags are
applied right after each pipeline is constructed.

Example:
    from buildmanifest.core.definition import build_manifest, parse_definition

    definition = parse_definition("fedora.toml")
    manifest = build_manifest(definition)
    document = manifest.serialize(load_package_specs("resolved.json"))
"""

from typing import Any, Callable, Dict, List, Optional

from buildmanifest.core.config import Config, get_config
from buildmanifest.core.descriptors import CommitSpec, Platform, Repository
from buildmanifest.core.exceptions import DefinitionError
from buildmanifest.core.logger import get_logger
from buildmanifest.core.manifest import Manifest
from buildmanifest.core.pipeline import (
    ArchivePipeline,
    BuildPipeline,
    OSCustomizations,
    OSPipeline,
    OSTreeCommitPipeline,
    Pipeline,
)

from .parser import ManifestDefinition, PipelineDefinition
from .validator import KNOWN_KINDS, validate_definition

logger = get_logger(__name__)

__all__ = ["build_manifest"]


class _BuildContext:
    """Shared inputs of every pipeline factory."""

    def __init__(
        self,
        manifest: Manifest,
        platform: Platform,
        repositories: List[Repository],
        config: Config,
    ):
        self.manifest = manifest
        self.platform = platform
        self.repositories = repositories
        self.config = config

    def lookup(self, name: Optional[str]) -> Optional[Pipeline]:
        if name is None:
            return None
        return self.manifest.get_pipeline(name)

    def build_root(self, pd: PipelineDefinition) -> Optional[Pipeline]:
        """Look up the build root of ``pd``, which must be able to serve as one."""
        build = self.lookup(pd.build)
        if build is not None and not build.provides_build_root:
            raise DefinitionError(
                f"Build root '{build.name}' is a '{build.kind}' pipeline; "
                f"only 'build' pipelines can be build roots",
                f"pipelines.{pd.name}.build",
            )
        return build


def _build_root(ctx: _BuildContext, pd: PipelineDefinition) -> Pipeline:
    return BuildPipeline(
        ctx.manifest,
        pd.name,
        runner=pd.options.get("runner", ctx.config.get("build", "runner", "org.osbuild.linux")),
        repositories=ctx.repositories,
        packages=pd.options.get("packages", []),
        build=ctx.build_root(pd),
    )


def _os_tree(ctx: _BuildContext, pd: PipelineDefinition) -> Pipeline:
    return OSPipeline(
        ctx.manifest,
        pd.name,
        ctx.build_root(pd),
        ctx.platform,
        repositories=ctx.repositories,
        customizations=OSCustomizations.from_dict(pd.options),
    )


def _ostree_commit(ctx: _BuildContext, pd: PipelineDefinition) -> Pipeline:
    parent = pd.options.get("parent")
    return OSTreeCommitPipeline(
        ctx.manifest,
        pd.name,
        ctx.build_root(pd),
        ctx.lookup(pd.tree),
        ref=pd.options["ref"],
        os_version=pd.options.get("os_version"),
        parent=CommitSpec.from_dict(parent) if parent else None,
    )


def _archive(ctx: _BuildContext, pd: PipelineDefinition) -> Pipeline:
    return ArchivePipeline(
        ctx.manifest,
        pd.name,
        ctx.build_root(pd),
        ctx.lookup(pd.tree),
        filename=pd.options.get("filename", "image.tar"),
        compression=pd.options.get("compression"),
    )


FACTORIES: Dict[str, Callable[[_BuildContext, PipelineDefinition], Pipeline]] = {
    "build": _build_root,
    "os": _os_tree,
    "ostree-commit": _ostree_commit,
    "archive": _archive,
}


def build_manifest(
    definition: ManifestDefinition,
    config: Optional[Config] = None,
    validate: bool = True,
) -> Manifest:
    """
    Build a Manifest from a definition.

    Args:
        definition: Parsed (and rendered) manifest definition
        config: Configuration supplying defaults; the active one if None
        validate: Validate the definition first

    Returns:
        Manifest owning one pipeline per pipeline definition

    Raises:
        DefinitionError: If the definition is invalid or a pipeline cannot
            be constructed from its options
    """
    config = config or get_config()

    if validate:
        result = validate_definition(definition)
        if not result.valid:
            raise DefinitionError("; ".join(str(e) for e in result.errors))

    platform_data: Dict[str, Any] = {"arch": config.get("platform", "arch", "x86_64")}
    platform_data.update(definition.platform)
    try:
        platform = Platform.from_dict(platform_data)
        repositories = [Repository.from_dict(r) for r in definition.repositories]
    except (KeyError, TypeError) as e:
        raise DefinitionError(f"Malformed platform or repository: {e}") from e

    manifest = Manifest(definition.name)
    ctx = _BuildContext(manifest, platform, repositories, config)

    try:
        order = definition.get_construction_order()
    except ValueError as e:
        raise DefinitionError(str(e), "pipelines") from e

    for name in order:
        pd = definition.get_pipeline(name)
        factory = FACTORIES.get(pd.kind)
        if factory is None:
            raise DefinitionError(f"Unknown pipeline kind: '{pd.kind}'", f"pipelines.{name}")
        if pd.export and not KNOWN_KINDS[pd.kind]["exportable"]:
            raise DefinitionError(
                f"Pipeline kind '{pd.kind}' cannot be exported", f"pipelines.{name}.export"
            )

        try:
            pipeline = factory(ctx, pd)
        except (KeyError, TypeError, ValueError) as e:
            raise DefinitionError(str(e), f"pipelines.{name}") from e

        if pd.checkpoint:
            pipeline.checkpoint()
        if pd.export:
            pipeline.export()

    logger.info(f"Built manifest '{manifest.name}' with {len(manifest)} pipeline(s)")
    return manifest
