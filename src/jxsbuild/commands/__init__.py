"""Command implementations for the jxsbuild CLI."""
