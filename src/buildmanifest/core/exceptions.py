"""
Exception Classes for Manifest Assembly

Two tiers of errors exist in this package:

1. Invariant violations are programming defects in how pipelines are
   assembled or how a Manifest walks its graph: a build root taken from a
   different manifest, a duplicate pipeline name, calling the serialization
   phases out of order, or exporting a pipeline kind that cannot be exported.
   They derive from AssertionError and are not meant to be caught and
   retried. Library code lets them propagate.

2. Recoverable errors derive from BuildManifestError. They describe bad user
   input (definition files, configuration) and are reported by the CLI.

Problems with external content (unresolvable packages, unreachable commits,
missing containers) are reported by the resolver and never raised here.
"""

from typing import Optional


class InvariantViolationError(AssertionError):
    """
    Raised when a pipeline or manifest invariant is broken.

    This signals a bug in a pipeline implementation or in the code driving
    the serialization pass, never a data problem.
    """


class UnsupportedOperationError(InvariantViolationError):
    """
    Raised when an operation is invoked on a pipeline kind that lacks it.

    The default ``export()`` of every pipeline raises this; only kinds that
    produce an independently exportable artifact override it.
    """

    def __init__(self, operation: str, pipeline: Optional[str] = None) -> None:
        self.operation = operation
        self.pipeline = pipeline
        if pipeline:
            message = f"Pipeline '{pipeline}' does not support {operation}"
        else:
            message = f"Operation not supported: {operation}"
        super().__init__(message)


class BuildManifestError(Exception):
    """Base class for recoverable, user-facing errors."""

    def __init__(self, message: str = "An error occurred while building the manifest.") -> None:
        super().__init__(message)
        self.message = message


class DefinitionError(BuildManifestError):
    """
    Raised when a manifest definition cannot be parsed or built.

    Attributes:
        message (str): Explanation of the error
        location (Optional[str]): Where in the definition the error was found
    """

    def __init__(self, message: str, location: Optional[str] = None) -> None:
        self.location = location
        if location:
            message = f"{location}: {message}"
        super().__init__(message)


class ConfigError(BuildManifestError):
    """Raised when a configuration file cannot be loaded."""
