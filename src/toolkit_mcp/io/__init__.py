"""IO - storage used by tools (caching)."""
