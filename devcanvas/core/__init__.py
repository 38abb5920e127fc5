"""Core domain: configuration, models, types and exceptions."""
