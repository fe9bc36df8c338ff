"""Shared helpers, validators and error types."""
