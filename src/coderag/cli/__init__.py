"""Command-line interface for coderag."""
