"""Core manifest assembly: descriptors, pipelines, manifests and definitions."""
