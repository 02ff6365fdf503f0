"""Small async helpers."""
