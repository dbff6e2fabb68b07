"""Command line interface for bankconv."""
