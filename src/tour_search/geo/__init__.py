"""Geo lookup models and offer assembly."""
