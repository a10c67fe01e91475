"""Listing API client layer for sitetrack."""

from sitetrack.client.base import ListingSource
from sitetrack.client.factories import create_http_source
from sitetrack.client.http import HttpListingSource

__all__ = ["ListingSource", "HttpListingSource", "create_http_source"]
