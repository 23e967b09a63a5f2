"""API Resilience Implementations.

Contains services for rate limiting, error classification, retries with
exponential backoff, and the request executor that ties them together.
Bounded Context: API Resilience
"""
