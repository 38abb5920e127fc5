"""Prompt templates used by DevCanvas services."""
