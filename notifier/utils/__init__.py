"""Small helpers shared across layers."""

from .clock import as_utc, to_naive_utc, utc_now, utc_now_naive

__all__ = ["as_utc", "to_naive_utc", "utc_now", "utc_now_naive"]
