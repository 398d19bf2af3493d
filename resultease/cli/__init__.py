"""Command-line entry point (``python -m resultease.cli``)."""
