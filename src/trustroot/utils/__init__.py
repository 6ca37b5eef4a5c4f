from .json import json_pretty
from .logging import configure_logging
from .timestamps import monotonic_ms, now_iso, utc_now

__all__ = ["json_pretty", "configure_logging", "monotonic_ms", "now_iso", "utc_now"]
