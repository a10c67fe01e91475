"""Command line interface for sitetrack."""
