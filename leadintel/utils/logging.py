"""Process-wide logger setup.

Modules ask for ``get_logger("db.repo")`` and receive a child of the
``leadintel`` logger, which owns the only handler. Messages are written as
``event key=value`` pairs, e.g. ``store_timeout op=fetch_comp_pool``.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

ROOT_NAMESPACE = "leadintel"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(level: Optional[str] = None) -> logging.Logger:
    root = logging.getLogger(ROOT_NAMESPACE)
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S"))
        root.addHandler(handler)
        # Our handler only; keep records out of the host's root logger.
        root.propagate = False
    root.setLevel((level or os.getenv("LOG_LEVEL") or "INFO").upper())
    return root


def get_logger(area: Optional[str] = None) -> logging.Logger:
    root = logging.getLogger(ROOT_NAMESPACE)
    if not root.handlers:
        configure_logging()
    return root.getChild(area) if area else root
