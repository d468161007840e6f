"""Built-in tools and predicates."""
