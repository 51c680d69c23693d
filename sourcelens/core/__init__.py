"""GUI-agnostic correlation engine: discovery, tree building, locking, search."""
