"""
buildmanifest CLI
"""

import json
from typing import Dict, Optional, Tuple

import click
from rich.console import Console
from rich.table import Table

from buildmanifest import __version__
from buildmanifest.core.config import (
    create_default_config_file,
    get_config,
    load_config,
    set_config,
)
from buildmanifest.core.exceptions import BuildManifestError
from buildmanifest.core.logger import set_level

console = Console()


class ConfigContext:
    """Context object to hold configuration."""
    def __init__(self):
        self.config = None


pass_config = click.make_pass_decorator(ConfigContext, ensure=True)


def _parse_variables(pairs: Tuple[str, ...]) -> Dict[str, str]:
    variables = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"Expected KEY=VALUE, got '{pair}'", param_hint="--var")
        variables[key] = value
    return variables


def _fail(message: str, error: Exception) -> None:
    click.echo(f"{message}: {error}", err=True)
    raise SystemExit(1) from error


@click.group()
@click.option('--config', 'config_path', type=click.Path(exists=True),
              help='Path to TOML configuration file')
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
@click.pass_context
def cli(ctx, config_path: Optional[str], verbose: bool):
    """buildmanifest - Build manifests for reproducible filesystem trees

    Configuration can be provided via:
    - --config option pointing to a TOML file
    - ./buildmanifest.toml in current directory
    - ~/.config/buildmanifest/config.toml
    """
    ctx.ensure_object(ConfigContext)
    if config_path:
        ctx.obj.config = load_config(config_path)
        set_config(ctx.obj.config)
    else:
        ctx.obj.config = get_config()

    set_level("DEBUG" if verbose else ctx.obj.config.get("logging", "level", "WARNING"))


@cli.command()
def version():
    """Display the current version of the buildmanifest package."""
    click.echo(f"buildmanifest v{__version__}")


@cli.command()
@click.argument("definition_file", type=click.Path(exists=True))
@click.option("--strict", is_flag=True, help="Treat warnings as errors")
@click.option("--var", "variables", multiple=True, help="Template variable (KEY=VALUE)")
def validate(definition_file, strict, variables):
    """Validate a manifest definition file."""
    from buildmanifest.core.definition import parse_definition, validate_definition

    try:
        definition = parse_definition(
            definition_file, variables=_parse_variables(variables), render_templates=False
        )
    except (BuildManifestError, OSError) as e:
        _fail("Error loading definition", e)

    result = validate_definition(definition, strict=strict)

    for warning in result.warnings:
        click.echo(str(warning))
    for error in result.errors:
        click.echo(str(error))

    if not result.valid:
        raise SystemExit(1)

    click.echo(f"Definition '{definition.name}' is valid")
    click.echo(f"  Pipelines: {len(definition.pipelines)}")


@cli.command()
@click.argument("definition_file", type=click.Path(exists=True))
@click.option("--json", "as_json", is_flag=True, help="Print declarations as JSON")
@click.option("--var", "variables", multiple=True, help="Template variable (KEY=VALUE)")
@pass_config
def deps(ctx, definition_file, as_json, variables):
    """Show the external content every pipeline declares."""
    from buildmanifest.core.definition import build_manifest, parse_definition

    try:
        definition = parse_definition(definition_file, variables=_parse_variables(variables))
        manifest = build_manifest(definition, config=ctx.config)
    except (BuildManifestError, OSError) as e:
        _fail("Error building manifest", e)

    dependencies = manifest.get_dependencies()

    if as_json:
        data = {name: d.to_dict() for name, d in dependencies.items()}
        click.echo(json.dumps(data, indent=ctx.config.get("output", "indent", 2)))
        return

    table = Table(title=f"Dependencies of {manifest.name}")
    table.add_column("Pipeline", style="cyan")
    table.add_column("Build packages")
    table.add_column("Package sets")
    table.add_column("Commits", justify="right")
    table.add_column("Containers", justify="right")
    table.add_column("Inline", justify="right")

    for name, d in dependencies.items():
        sets = "; ".join(" ".join(s.include) or "-" for s in d.package_set_chain)
        table.add_row(
            name,
            " ".join(d.build_packages) or "-",
            sets or "-",
            str(len(d.ostree_commits)),
            str(len(d.container_specs)),
            str(len(d.inline)),
        )

    console.print(table)


@cli.command()
@click.argument("definition_file", type=click.Path(exists=True))
@click.option("--packages", "-p", "packages_file", type=click.Path(exists=True),
              help="JSON file with resolved package specs per pipeline")
@click.option("--output", "-o", type=click.Path(), help="Write the manifest to this file")
@click.option("--var", "variables", multiple=True, help="Template variable (KEY=VALUE)")
@pass_config
def render(ctx, definition_file, packages_file, output, variables):
    """Render a manifest definition into a manifest document."""
    from buildmanifest.core.definition import build_manifest, load_package_specs, parse_definition

    try:
        definition = parse_definition(definition_file, variables=_parse_variables(variables))
        manifest = build_manifest(definition, config=ctx.config)
        package_sets = load_package_specs(packages_file) if packages_file else {}
    except (BuildManifestError, OSError) as e:
        _fail("Error building manifest", e)

    missing = [name for name in manifest.get_package_set_chains() if name not in package_sets]
    if missing:
        click.echo(f"No resolved package sets for pipelines: {', '.join(missing)}", err=True)
        raise SystemExit(1)

    misaligned = [
        name
        for name, chain in manifest.get_package_set_chains().items()
        if len(package_sets[name]) != len(chain)
    ]
    if misaligned:
        click.echo(
            f"Resolved package sets do not match the declared chains of: {', '.join(misaligned)}",
            err=True,
        )
        raise SystemExit(1)

    document = manifest.serialize(package_sets)
    text = json.dumps(
        document,
        indent=ctx.config.get("output", "indent", 2),
        sort_keys=ctx.config.get("output", "sort_keys", False),
    )

    if output:
        with open(output, "w", encoding="utf-8") as f:
            f.write(text + "\n")
        click.echo(f"Wrote manifest to {output}")
        click.echo(f"  Checkpoints: {', '.join(manifest.get_checkpoints()) or '-'}")
        click.echo(f"  Exports: {', '.join(manifest.get_exports()) or '-'}")
    else:
        click.echo(text)


@cli.group()
def config():
    """Configuration management commands."""
    pass


@config.command("show")
@pass_config
def config_show(ctx):
    """Show the active configuration."""
    source = ctx.config.source or "built-in defaults"
    click.echo(f"# Loaded from: {source}")
    for section, values in ctx.config.to_dict().items():
        click.echo(f"[{section}]")
        for key, value in values.items():
            click.echo(f"{key} = {value!r}")
        click.echo("")


@config.command("init")
@click.argument("output_file", type=click.Path(), default="buildmanifest.toml")
@click.option("--force", "-f", is_flag=True, help="Overwrite existing file")
def config_init(output_file, force):
    """Create a default configuration file."""
    from pathlib import Path

    if Path(output_file).exists() and not force:
        click.echo(f"File already exists: {output_file}")
        click.echo("Use --force to overwrite")
        raise SystemExit(1)

    path = create_default_config_file(output_file)
    click.echo(f"Created configuration file: {path}")


if __name__ == "__main__":
    cli()
