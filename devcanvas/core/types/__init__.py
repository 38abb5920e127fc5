"""Shared enums and type tables."""
