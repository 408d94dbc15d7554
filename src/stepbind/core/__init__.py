"""Core indexing, compilation and resolution components."""
