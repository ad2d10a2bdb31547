"""Template expansion, path and formatting helpers."""
