"""Composition root: the only layer that wires infrastructure into services."""
