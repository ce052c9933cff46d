"""Utility helpers shared by the progress modules."""

from learnhub.utils.dates import ensure_utc_aware, utc_now
from learnhub.utils.percent import percent_of


__all__ = ["ensure_utc_aware", "percent_of", "utc_now"]
