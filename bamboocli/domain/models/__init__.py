"""Domain models (value objects, request and error structures)."""
