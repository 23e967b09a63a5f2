"""Outbound HTTP transport to the BambooHR API."""
