"""Web entrypoints."""
