"""Command-line interface for micromarker."""
