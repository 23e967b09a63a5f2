"""Abstract interfaces implemented by the infrastructure layer."""
