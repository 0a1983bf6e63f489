"""Domain models (value objects and wire structures)."""
