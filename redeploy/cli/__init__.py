"""Command line interface for redeploy."""
