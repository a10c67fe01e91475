"""Sitetrack CLI commands."""
