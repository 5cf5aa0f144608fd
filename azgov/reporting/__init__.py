"""Report rendering and export helpers."""
