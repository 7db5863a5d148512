"""
Date Parser utility for timestamps reported by the container tooling.
"""

import re
from datetime import datetime
from typing import Optional
import logging

from dateutil import parser as dateutil_parser


class DateParser:
    """Utility class for parsing the timestamp formats Docker emits."""

    # Docker prints nanosecond precision; datetime stops at microseconds
    _FRACTION = re.compile(r'(\.\d{6})\d+')

    def __init__(self):
        self.logger = logging.getLogger('DateParser')

    def parse(self, date_string: str) -> Optional[datetime]:
        """
        Parse a date string into a datetime object.

        RFC 3339 strings, as in the ``Created`` field of ``docker image inspect``,
        go through the strict ISO parser. Anything else gets one lenient attempt.

        Args:
            date_string: String containing a date

        Returns:
            datetime object or None if parsing fails
        """
        if not date_string:
            return None

        date_string = self._clean_date_string(date_string)

        try:
            return dateutil_parser.isoparse(date_string)
        except (ValueError, OverflowError):
            pass

        try:
            return dateutil_parser.parse(date_string)
        except (ValueError, OverflowError):
            self.logger.debug(f"Could not parse date: {date_string}")
            return None

    def _clean_date_string(self, date_string: str) -> str:
        """Trim whitespace and extra fractional digits."""
        date_string = ' '.join(date_string.split())
        return self._FRACTION.sub(r'\1', date_string)
