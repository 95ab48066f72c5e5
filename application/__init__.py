"""Application layer: ports (interfaces) and exceptions."""
