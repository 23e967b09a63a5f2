"""bamboocli: resilient command-line client for the BambooHR API."""

__version__ = "1.0.0"
