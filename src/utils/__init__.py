"""Utilities package for pack-tracker application."""

from .config import Config, get_config, set_config, reset_config
from .datetime_utils import as_naive_utc, day_bounds, utc_now
from .validators import to_decimal

__all__ = [
    "Config",
    "get_config",
    "set_config",
    "reset_config",
    "as_naive_utc",
    "day_bounds",
    "utc_now",
    "to_decimal",
]
