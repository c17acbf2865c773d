"""Utility functions for tramita."""

from tramita.utils.date_parser import parse_date, parse_datetime

__all__ = ["parse_date", "parse_datetime"]
