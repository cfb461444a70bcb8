# core/definition/validator.py
"""
Manifest Definition Validator
=============================

Schema validation for TOML manifest definitions.

Provides validation of:
- Manifest structure and required fields
- Pipeline kinds and options
- Reference integrity (build roots, tree inputs)
- Export support of the pipeline kinds
- Variable references

Example:
    from buildmanifest.core.definition import parse_definition, validate_definition

    definition = parse_definition("fedora.toml", render_templates=False)
    result = validate_definition(definition)

    if not result.valid:
        for error in result.errors:
            print(f"Error: {error}")
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

from buildmanifest.core.logger import get_logger

from .parser import ManifestDefinition, PipelineDefinition

logger = get_logger(__name__)

__all__ = [
    "ValidationResult",
    "ValidationError",
    "DefinitionValidator",
    "KNOWN_KINDS",
    "validate_definition",
]


@dataclass
class ValidationError:
    """A single validation error."""

    message: str
    location: str = ""
    severity: str = "error"  # "error", "warning"

    def __str__(self) -> str:
        if self.location:
            return f"[{self.severity.upper()}] {self.location}: {self.message}"
        return f"[{self.severity.upper()}] {self.message}"


@dataclass
class ValidationResult:
    """Result of definition validation."""

    valid: bool
    errors: List[ValidationError] = field(default_factory=list)
    warnings: List[ValidationError] = field(default_factory=list)

    def add_error(
        self,
        message: str,
        location: str = "",
    ) -> None:
        """Add an error."""
        self.errors.append(ValidationError(message, location, "error"))
        self.valid = False

    def add_warning(
        self,
        message: str,
        location: str = "",
    ) -> None:
        """Add a warning."""
        self.warnings.append(ValidationError(message, location, "warning"))

    def merge(self, other: "ValidationResult") -> None:
        """Merge another validation result into this one."""
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)
        if not other.valid:
            self.valid = False

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "valid": self.valid,
            "errors": [str(e) for e in self.errors],
            "warnings": [str(w) for w in self.warnings],
        }


# Known pipeline kinds: required/optional options, whether a tree input is
# required, and whether the kind can be exported.
KNOWN_KINDS: Dict[str, Dict[str, Any]] = {
    "build": {
        "required": [],
        "optional": ["runner", "packages"],
        "tree": False,
        "exportable": False,
    },
    "os": {
        "required": [],
        "optional": [
            "packages",
            "exclude_packages",
            "extra_package_sets",
            "hostname",
            "timezone",
            "locale",
            "files",
            "containers",
        ],
        "tree": False,
        "exportable": False,
    },
    "ostree-commit": {
        "required": ["ref"],
        "optional": ["os_version", "parent"],
        "tree": True,
        "exportable": False,
    },
    "archive": {
        "required": [],
        "optional": ["filename", "compression"],
        "tree": True,
        "exportable": True,
    },
}

_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")
_VAR_PATTERN = re.compile(r"\{\{\s*(\w+)(?:\.\w+)*\s*\}\}")


class DefinitionValidator:
    """
    Validator for manifest definitions.

    Performs validation of:
    - Manifest metadata
    - Pipelines (names, kinds, options)
    - References between pipelines
    - Variable references
    """

    def __init__(self):
        """Initialize validator."""
        self._known_kinds = {kind: dict(spec) for kind, spec in KNOWN_KINDS.items()}

    def validate(self, definition: ManifestDefinition) -> ValidationResult:
        """
        Validate a manifest definition.

        Args:
            definition: Definition to validate

        Returns:
            ValidationResult with errors and warnings
        """
        result = ValidationResult(valid=True)

        self._validate_metadata(definition, result)
        self._validate_pipelines(definition, result)
        self._validate_references(definition, result)
        self._validate_variable_references(definition, result)

        return result

    def _validate_metadata(
        self,
        definition: ManifestDefinition,
        result: ValidationResult,
    ) -> None:
        """Validate manifest metadata."""
        if not definition.name:
            result.add_error("Manifest name is required", "manifest.name")
        elif not _NAME_PATTERN.match(definition.name):
            result.add_warning(
                "Manifest name should contain only alphanumeric characters, "
                "dots, underscores, and hyphens",
                "manifest.name",
            )

        if not definition.pipelines:
            result.add_error("Manifest must have at least one pipeline", "pipelines")

        for idx, repo in enumerate(definition.repositories):
            location = f"repositories[{idx}]"
            if not repo.get("id"):
                result.add_error("Repository id is required", location)
            if not repo.get("baseurl") and not repo.get("metalink"):
                result.add_error("Repository needs a baseurl or a metalink", location)

    def _validate_pipelines(
        self,
        definition: ManifestDefinition,
        result: ValidationResult,
    ) -> None:
        """Validate individual pipelines."""
        names: Set[str] = set()

        for idx, pipeline in enumerate(definition.pipelines):
            location = f"pipelines[{idx}]"

            if pipeline.name in names:
                result.add_error(f"Duplicate pipeline name: '{pipeline.name}'", location)
            names.add(pipeline.name)

            if not pipeline.name:
                result.add_error("Pipeline name is required", location)
            elif not _NAME_PATTERN.match(pipeline.name):
                result.add_warning(
                    f"Pipeline name '{pipeline.name}' should contain only "
                    "alphanumeric characters, dots, underscores, and hyphens",
                    f"{location}.name",
                )

            spec = self._known_kinds.get(pipeline.kind)
            if spec is None:
                result.add_error(
                    f"Unknown pipeline kind: '{pipeline.kind}'. "
                    f"Known kinds: {', '.join(sorted(self._known_kinds))}",
                    f"{location}.kind",
                )
                continue

            self._validate_options(pipeline, spec, location, result)

            if spec["tree"] and not pipeline.tree:
                result.add_error(
                    f"Pipeline kind '{pipeline.kind}' requires a tree input", f"{location}.tree"
                )
            elif pipeline.tree and not spec["tree"]:
                result.add_warning(
                    f"Pipeline kind '{pipeline.kind}' ignores its tree input", f"{location}.tree"
                )

            if pipeline.export and not spec["exportable"]:
                result.add_error(
                    f"Pipeline kind '{pipeline.kind}' cannot be exported", f"{location}.export"
                )

            if pipeline.kind == "os" and not definition.platform.get("arch"):
                result.add_warning(
                    "No platform architecture given, the configured default is used",
                    "platform.arch",
                )

    def _validate_options(
        self,
        pipeline: PipelineDefinition,
        spec: Dict[str, Any],
        location: str,
        result: ValidationResult,
    ) -> None:
        """Validate options for a known kind."""
        required = set(spec.get("required", []))
        optional = set(spec.get("optional", []))
        provided = set(pipeline.options.keys())

        for option in sorted(required - provided):
            result.add_error(
                f"Missing required option '{option}' for kind '{pipeline.kind}'",
                f"{location}.options",
            )

        for option in sorted(provided - required - optional):
            result.add_warning(
                f"Unknown option '{option}' for kind '{pipeline.kind}'",
                f"{location}.options.{option}",
            )

    def _validate_references(
        self,
        definition: ManifestDefinition,
        result: ValidationResult,
    ) -> None:
        """Validate references between pipelines."""
        kinds = {p.name: p.kind for p in definition.pipelines}
        broken = False

        for idx, pipeline in enumerate(definition.pipelines):
            for attr in ("build", "tree"):
                ref: Optional[str] = getattr(pipeline, attr)
                if not ref:
                    continue
                location = f"pipelines[{idx}].{attr}"
                if ref == pipeline.name:
                    result.add_error(f"Pipeline '{pipeline.name}' cannot reference itself", location)
                    broken = True
                elif ref not in kinds:
                    result.add_error(
                        f"Pipeline '{pipeline.name}' references unknown pipeline: '{ref}'", location
                    )
                    broken = True
                elif attr == "build" and kinds[ref] != "build":
                    result.add_error(
                        f"Build root '{ref}' of pipeline '{pipeline.name}' is a "
                        f"'{kinds[ref]}' pipeline; only 'build' pipelines can be build roots",
                        location,
                    )

        if broken:
            return

        try:
            definition.get_construction_order()
        except ValueError as e:
            result.add_error(str(e), "pipelines")

    def _validate_variable_references(
        self,
        definition: ManifestDefinition,
        result: ValidationResult,
    ) -> None:
        """Validate variable references in templates."""
        defined_vars = set(definition.variables.keys())

        for idx, pipeline in enumerate(definition.pipelines):
            for ref in self._find_variable_refs(pipeline.options):
                if ref not in defined_vars:
                    result.add_warning(
                        f"Reference to undefined variable '{{{{ {ref} }}}}'",
                        f"pipelines[{idx}].options",
                    )

        for ref in self._find_variable_refs(definition.platform):
            if ref not in defined_vars:
                result.add_warning(f"Reference to undefined variable '{{{{ {ref} }}}}'", "platform")

        for idx, repo in enumerate(definition.repositories):
            for ref in self._find_variable_refs(repo):
                if ref not in defined_vars:
                    result.add_warning(
                        f"Reference to undefined variable '{{{{ {ref} }}}}'",
                        f"repositories[{idx}]",
                    )

    def _find_variable_refs(self, value: Any) -> Set[str]:
        """Recursively find variable references in a value."""
        refs: Set[str] = set()
        if isinstance(value, str):
            refs.update(_VAR_PATTERN.findall(value))
        elif isinstance(value, dict):
            for v in value.values():
                refs.update(self._find_variable_refs(v))
        elif isinstance(value, list):
            for v in value:
                refs.update(self._find_variable_refs(v))
        return refs


def validate_definition(
    definition: ManifestDefinition,
    strict: bool = False,
) -> ValidationResult:
    """
    Validate a manifest definition.

    Args:
        definition: Definition to validate
        strict: Treat warnings as errors

    Returns:
        ValidationResult
    """
    validator = DefinitionValidator()
    result = validator.validate(definition)

    if strict and result.warnings:
        result.valid = False

    return result
