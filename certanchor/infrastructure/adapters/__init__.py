"""Production adapters for external systems."""
