"""Mention-driven chat assistant."""
