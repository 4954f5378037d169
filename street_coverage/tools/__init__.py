"""Command-line tools built on the street coverage engine."""
