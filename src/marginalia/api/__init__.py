"""HTTP API of the Marginalia service."""
