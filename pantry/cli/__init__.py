"""Pantry CLI: Typer-based command-line interface.

Provides the ``pantry`` command with subcommands for managing users and
categories, packaging and publishing cookbooks, and retracting them.

All output uses Rich for formatted terminal display.
"""
