"""Core engine: tree model, path resolution and editing services."""
