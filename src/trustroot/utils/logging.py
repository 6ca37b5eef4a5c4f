from __future__ import annotations

import logging
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """
    Configure root logging once for command-line use.

    Library code only ever calls logging.getLogger(__name__); handlers are
    the application's business.
    """
    if level is None:
        from trustroot.core.settings import get_settings

        level = get_settings().runtime.log_level

    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
