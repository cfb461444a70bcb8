"""
Definition Package
==================

TOML manifest definitions and the builder turning them into a Manifest.

This package provides:
- ManifestDefinition, PipelineDefinition: parsed definitions
- parse_definition, parse_definition_string: TOML parsing
- render_definition: Jinja2 variable rendering
- definition_to_toml: serialization back to TOML
- DefinitionValidator, validate_definition: schema validation
- build_manifest: Manifest construction
- load_package_specs: resolved package specs from JSON
"""

from .builder import build_manifest
from .parser import (
    ManifestDefinition,
    PipelineDefinition,
    definition_to_toml,
    load_package_specs,
    parse_definition,
    parse_definition_string,
    render_definition,
)
from .validator import (
    KNOWN_KINDS,
    DefinitionValidator,
    ValidationError,
    ValidationResult,
    validate_definition,
)

__all__ = [
    # Parsing
    "ManifestDefinition",
    "PipelineDefinition",
    "parse_definition",
    "parse_definition_string",
    "render_definition",
    "definition_to_toml",
    "load_package_specs",
    # Validation
    "DefinitionValidator",
    "ValidationResult",
    "ValidationError",
    "KNOWN_KINDS",
    "validate_definition",
    # Building
    "build_manifest",
]
