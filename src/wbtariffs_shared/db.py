"""
db.py — Supabase client factory.

The composition root (wbtariffs_pipeline.service) builds exactly one
client per process and hands it to the repository; nothing here caches
a module-level client.

Usage:
    from wbtariffs_shared.db import create_supabase_client

    supabase = create_supabase_client()            # uses global settings
    supabase = create_supabase_client(my_settings)
"""

from __future__ import annotations

import structlog
from supabase import Client, create_client

from wbtariffs_shared.config import Settings, settings as default_settings
from wbtariffs_shared.exceptions import ConfigurationError

logger = structlog.get_logger(__name__)


def create_supabase_client(settings: Settings | None = None) -> Client:
    """
    Build a Supabase client authenticated with the service role key.

    The pipeline writes with the service role so RLS does not apply.

    Args:
        settings: Settings to read the URL and key from (default: global).

    Returns:
        supabase.Client instance.

    Raises:
        ConfigurationError: SUPABASE_SERVICE_KEY is not set.
    """
    cfg = settings or default_settings
    if not cfg.supabase_service_key:
        raise ConfigurationError(
            "SUPABASE_SERVICE_KEY is not set. Set it in .env before starting the service."
        )
    client = create_client(cfg.supabase_url, cfg.supabase_service_key)
    logger.info("supabase_client_created", url=cfg.supabase_url)
    return client
