"""Shared utilities: exceptions, logging helpers, registry and text patterns."""
