"""Public API surface."""
