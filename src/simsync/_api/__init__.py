"""REST endpoint wrappers (internal)."""
