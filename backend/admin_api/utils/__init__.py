"""Path and slug helpers."""
