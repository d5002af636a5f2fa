"""Command-line interface for the Pincho client."""
