"""Caching Service Implementation.

In-memory response cache with per-entry TTL and lazy eviction.
Bounded Context: Cache Management
"""
