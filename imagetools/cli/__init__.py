"""Command-line interface for imagetools."""
