"""Content catalog and grid index."""
