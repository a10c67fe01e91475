"""Utility functions for sitetrack."""

from sitetrack.utils.date_parser import parse_date, parse_record_date
from sitetrack.utils.numbers import parse_amount, round_half_up, to_number

__all__ = ["parse_date", "parse_record_date", "parse_amount", "round_half_up", "to_number"]
