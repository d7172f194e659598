"""
wbtariffs_shared — shared configuration, models and clients for wbtariffs.

Usage:
    from wbtariffs_shared.config import settings
    from wbtariffs_shared.db import create_supabase_client
    from wbtariffs_shared.models.tariffs import TariffRecord, TariffRecordDraft
    from wbtariffs_shared.constants import TARIFFS_TABLE, NATURAL_KEY
"""

__version__ = "1.0.0"
