"""Command-line entry-point package."""
