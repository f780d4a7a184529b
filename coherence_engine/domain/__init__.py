"""Serialization of engine records."""
