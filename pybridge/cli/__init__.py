"""Command-line interface for pybridge."""
