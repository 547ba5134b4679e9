"""Shared utilities: structured logging and random sources."""
