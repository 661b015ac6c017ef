"""Command-line interface for ironplan."""
