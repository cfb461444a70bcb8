"""
Manifest Package
================

The Manifest owns every pipeline of one build, aggregates their dependency
declarations and serializes them into an engine-consumable document.
"""

from .manifest import MANIFEST_VERSION, Manifest, PipelineDependencies
from .sources import generate_sources

__all__ = [
    "Manifest",
    "PipelineDependencies",
    "MANIFEST_VERSION",
    "generate_sources",
]
