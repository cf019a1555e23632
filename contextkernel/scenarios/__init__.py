"""Command line scenarios."""
