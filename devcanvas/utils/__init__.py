"""Utilities: discovery, ignore rules and chunk hashing."""
