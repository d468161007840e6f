"""Settings and workflow file loading."""
