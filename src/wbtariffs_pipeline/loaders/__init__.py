"""
wbtariffs_pipeline.loaders — storage access for the tariffs table.

  TariffsRepository — idempotent Supabase upserts, snapshot reads, retention
"""

from wbtariffs_pipeline.loaders.tariffs import LoadResult, TariffsRepository

__all__ = ["LoadResult", "TariffsRepository"]
