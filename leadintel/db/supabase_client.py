"""Helper to create a Supabase client when credentials are provided."""

from __future__ import annotations

import os
from typing import Optional

from ..utils.logging import get_logger

LOGGER = get_logger("db.supabase")


def create_supabase_client(url: Optional[str] = None, key: Optional[str] = None):
    url = url or os.getenv("SUPABASE_URL")
    key = key or os.getenv("SUPABASE_SERVICE_ROLE_KEY") or os.getenv("SUPABASE_ANON_KEY")
    if not url or not key:
        LOGGER.info("Supabase credentials not configured; skipping client creation")
        return None
    from supabase import create_client

    LOGGER.info("supabase_client_created url=%s", url)
    return create_client(url, key)
